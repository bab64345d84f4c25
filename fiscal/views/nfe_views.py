# fiscal/views/nfe_views.py

import logging
from dataclasses import asdict

from django.http import HttpResponse
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import APIException, ValidationError as DRFValidationError
from rest_framework.permissions import IsAuthenticated

from commons.responses import sucesso
from fiscal.exceptions import AuthorityRejected, AuthorityUnavailable, FiscalError
from fiscal.permissions import PodeConsultarNfe, PodeEmitirNfe
from fiscal.serializers_nfe import (
    CancelarNfeInputSerializer,
    CancelarNfeOutputSerializer,
    GerarNfeOutputSerializer,
    ListarNfeQuerySerializer,
    NfeStatusOutputSerializer,
    TransmitirNfeInputSerializer,
    TransmitirNfeOutputSerializer,
)
from fiscal.services.cancelamento_service import cancelar_nfe
from fiscal.services.consulta_service import (
    listar_documentos,
    listar_documentos_fatura,
    obter_status,
    obter_xml,
)
from fiscal.services.geracao_service import gerar_nfe
from fiscal.services.transmissao_service import transmitir_nfe

logger = logging.getLogger("vet.fiscal")


def _tenant_id_from_request(request):
    return getattr(getattr(request, "tenant", None), "id", None)


def _contexto(request, event: str, **extra) -> dict:
    tenant_id = _tenant_id_from_request(request)
    contexto = {
        "event": event,
        "tenant_id": str(tenant_id) if tenant_id else None,
        "user_id": getattr(request.user, "id", None),
        "request_id": getattr(request, "request_id", None),
    }
    contexto.update(extra)
    return contexto


def _log_falha(request, event: str, exc: Exception, **extra) -> None:
    """
    Log padronizado das falhas das operações de NF-e, por tipo de erro.
    """
    if isinstance(exc, DRFValidationError):
        logger.warning(
            f"{event}_validacao",
            extra=_contexto(request, event, errors=exc.detail, outcome="validation_error", **extra),
        )
    elif isinstance(exc, AuthorityRejected):
        logger.warning(
            f"{event}_rejeitada",
            extra=_contexto(
                request,
                event,
                codigo_sefaz=exc.codigo_sefaz,
                mensagem_sefaz=exc.mensagem_sefaz,
                outcome="rejected",
                **extra,
            ),
        )
    elif isinstance(exc, AuthorityUnavailable):
        logger.warning(
            f"{event}_sefaz_indisponivel",
            extra=_contexto(request, event, detail=exc.message, outcome="unavailable", **extra),
        )
    elif isinstance(exc, FiscalError):
        logger.warning(
            f"{event}_erro_fiscal",
            extra=_contexto(request, event, code=exc.code, detail=exc.message, outcome="fiscal_error", **extra),
        )
    else:
        logger.exception(
            f"{event}_erro",
            extra=_contexto(request, event, error=str(exc), **extra),
        )


@api_view(["POST"])
@permission_classes([IsAuthenticated, PodeEmitirNfe])
def gerar_nfe_view(request, fatura_id):
    """
    Gera a NF-e (pendente) de uma fatura.

    URL final:
        POST /api/v1/fiscal/nfe/gerar/<fatura_id>/
    """
    try:
        result = gerar_nfe(
            tenant_id=_tenant_id_from_request(request),
            fatura_id=fatura_id,
            user_id=getattr(request.user, "id", None),
        )
    except APIException as exc:
        _log_falha(request, "nfe_gerar", exc, fatura_id=str(fatura_id))
        raise

    logger.info(
        "nfe_gerar",
        extra=_contexto(
            request,
            "nfe_gerar",
            fatura_id=result.fatura_id,
            documento_id=result.documento_id,
            numero=result.numero,
            outcome="success",
        ),
    )
    return sucesso(GerarNfeOutputSerializer(asdict(result)).data, "NF-e gerada com sucesso", status=201)


@api_view(["POST"])
@permission_classes([IsAuthenticated, PodeEmitirNfe])
def transmitir_nfe_view(request, documento_id):
    """
    Transmite a NF-e para a SEFAZ.

    URL final:
        POST /api/v1/fiscal/nfe/transmitir/<documento_id>/

    Respostas de erro:
      - 409 status inválido / tentativas esgotadas / autorização duplicada
      - 422 rejeição da SEFAZ (documento fica 'rejected')
      - 503 SEFAZ indisponível (documento volta para 'pending')
      - 501 produção ainda não implementada
    """
    try:
        ser_in = TransmitirNfeInputSerializer(data=request.data or {})
        ser_in.is_valid(raise_exception=True)

        result = transmitir_nfe(
            documento_id=documento_id,
            tenant_id=_tenant_id_from_request(request),
            timeout=ser_in.validated_data.get("timeout"),
            user_id=getattr(request.user, "id", None),
        )
    except APIException as exc:
        _log_falha(request, "nfe_transmitir", exc, documento_id=str(documento_id))
        raise

    return sucesso(TransmitirNfeOutputSerializer(asdict(result)).data, "NF-e autorizada")


@api_view(["POST"])
@permission_classes([IsAuthenticated, PodeEmitirNfe])
def cancelar_nfe_view(request, documento_id):
    """
    Cancela uma NF-e autorizada (até 24h após a autorização).

    URL final:
        POST /api/v1/fiscal/nfe/cancelar/<documento_id>/
    """
    try:
        ser_in = CancelarNfeInputSerializer(data=request.data)
        ser_in.is_valid(raise_exception=True)
        data = ser_in.validated_data

        result = cancelar_nfe(
            documento_id=documento_id,
            motivo=data["motivo"],
            tenant_id=_tenant_id_from_request(request),
            timeout=data.get("timeout"),
            user_id=getattr(request.user, "id", None),
        )
    except APIException as exc:
        _log_falha(request, "nfe_cancelar", exc, documento_id=str(documento_id))
        raise

    return sucesso(CancelarNfeOutputSerializer(asdict(result)).data, "NF-e cancelada com sucesso")


@api_view(["GET"])
@permission_classes([IsAuthenticated, PodeConsultarNfe])
def status_nfe_view(request, documento_id):
    """
    GET /api/v1/fiscal/nfe/status/<documento_id>/
    """
    result = obter_status(documento_id, tenant_id=_tenant_id_from_request(request))
    return sucesso(NfeStatusOutputSerializer(asdict(result)).data)


@api_view(["GET"])
@permission_classes([IsAuthenticated, PodeConsultarNfe])
def documentos_fatura_view(request, fatura_id):
    """
    GET /api/v1/fiscal/nfe/fatura/<fatura_id>/
    """
    docs = listar_documentos_fatura(tenant_id=_tenant_id_from_request(request), fatura_id=fatura_id)
    return sucesso(NfeStatusOutputSerializer([asdict(d) for d in docs], many=True).data)


@api_view(["GET"])
@permission_classes([IsAuthenticated, PodeConsultarNfe])
def documentos_view(request):
    """
    GET /api/v1/fiscal/nfe/documentos/?status=authorized&limite=50
    """
    ser_q = ListarNfeQuerySerializer(data=request.query_params)
    ser_q.is_valid(raise_exception=True)

    docs = listar_documentos(
        tenant_id=_tenant_id_from_request(request),
        status=ser_q.validated_data.get("status"),
        limite=ser_q.validated_data.get("limite"),
    )
    return sucesso(docs)


@api_view(["GET"])
@permission_classes([IsAuthenticated, PodeConsultarNfe])
def xml_nfe_view(request, documento_id):
    """
    Download do XML de envio.

    GET /api/v1/fiscal/nfe/xml/<documento_id>/
    """
    chave, xml = obter_xml(documento_id, tenant_id=_tenant_id_from_request(request))

    response = HttpResponse(xml, content_type="application/xml; charset=utf-8")
    response["Content-Disposition"] = f'attachment; filename="NFe_{chave}.xml"'
    return response
