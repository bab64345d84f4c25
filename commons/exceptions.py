# commons/exceptions.py

import logging

from rest_framework.views import exception_handler

logger = logging.getLogger("django.request")


def _extrair_code_message(detail):
    """
    Erros de domínio chegam como {"code": ..., "message": ...};
    erros de validação do DRF chegam como dict/list de campos.
    """
    if isinstance(detail, dict) and "code" in detail and "message" in detail:
        extras = {k: v for k, v in detail.items() if k not in ("code", "message")}
        return str(detail["code"]), str(detail["message"]), extras or None

    if isinstance(detail, (dict, list)):
        return "VALIDATION_ERROR", "Dados inválidos.", detail

    return None, str(detail), None


def envelope_exception_handler(exc, context):
    """
    EXCEPTION_HANDLER do DRF: mantém o status calculado pelo handler padrão
    e reescreve o corpo no envelope {"success": false, ...}.
    """
    response = exception_handler(exc, context)
    if response is None:
        return None

    detail = getattr(exc, "detail", response.data)
    code, message, errors = _extrair_code_message(detail)

    corpo = {"success": False, "message": message, "code": code}
    if errors is not None:
        corpo["errors"] = errors

    response.data = corpo
    return response
