# fiscal/services/auditoria_service.py

from __future__ import annotations

from typing import Any, Dict, Optional

from fiscal.models import NfeAuditoria, NfeDocumento


def registrar_auditoria(
    *,
    tipo_evento: str,
    documento: Optional[NfeDocumento],
    tenant_id=None,
    user_id: Optional[int] = None,
    codigo_retorno: Optional[str] = None,
    mensagem_retorno: Optional[str] = None,
    raw: Optional[Dict[str, Any]] = None,
) -> NfeAuditoria:
    """
    Grava um evento na trilha de auditoria fiscal.

    Ambiente/UF são copiados da configuração do documento, para consulta
    sem join.
    """
    config = getattr(documento, "config", None)

    return NfeAuditoria.objects.create(
        tipo_evento=tipo_evento,
        documento=documento,
        tenant_id=str(tenant_id) if tenant_id is not None else None,
        user_id=user_id,
        codigo_retorno=str(codigo_retorno) if codigo_retorno is not None else None,
        mensagem_retorno=mensagem_retorno,
        raw_sefaz_response=raw,
        ambiente=getattr(config, "ambiente", None),
        uf=(getattr(config, "uf", None) or None),
    )
