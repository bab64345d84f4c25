# fiscal/services/cancelamento_service.py

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from financeiro.models import FaturaStatusFiscal
from financeiro.services.fatura_store import definir_status_fiscal
from fiscal.exceptions import (
    AuthorityRejected,
    AuthorityUnavailable,
    CancellationWindowExpired,
    InvalidState,
    ReasonTooShort,
    TransportNotImplemented,
)
from fiscal.models import NfeDocumento, NfeStatus
from fiscal.sefaz_clients import (
    SefazCancelamentoHomologado,
    SefazClientProtocol,
    SefazIndisponivel,
    SefazRejeitada,
)
from fiscal.sefaz_factory import get_sefaz_client_for_config
from fiscal.services.auditoria_service import registrar_auditoria
from fiscal.services.consulta_service import obter_documento
from fiscal.services.nfe_state_machine import NfeStateMachine

logger = logging.getLogger("vet.fiscal")


@dataclass
class CancelarNfeResult:
    documento_id: str
    fatura_id: str
    numero: int
    serie: int
    chave_acesso: str
    protocolo_cancelamento: str
    status: str
    mensagem: str
    data_cancelamento: str


def _motivo_minimo() -> int:
    return int(getattr(settings, "NFE_MOTIVO_MINIMO", 15))


def _janela_cancelamento() -> timedelta:
    return timedelta(hours=int(getattr(settings, "NFE_JANELA_CANCELAMENTO_HORAS", 24)))


def _assert_pode_cancelar(documento: NfeDocumento, motivo: str, agora) -> str:
    """
    Ordem das validações: status, motivo, prazo.
    Retorna o motivo normalizado.
    """
    if documento.status != NfeStatus.AUTORIZADA:
        raise InvalidState(
            f"Documento NF-e em status '{documento.status}' não pode ser cancelado.",
            status_atual=documento.status,
        )

    motivo = (motivo or "").strip()
    if len(motivo) < _motivo_minimo():
        raise ReasonTooShort()

    autorizado_em = documento.data_autorizacao
    if autorizado_em is None or agora - autorizado_em > _janela_cancelamento():
        raise CancellationWindowExpired()

    return motivo


def cancelar_nfe(
    *,
    documento_id,
    motivo: str,
    tenant_id=None,
    sefaz_client: Optional[SefazClientProtocol] = None,
    timeout: Optional[float] = None,
    user_id: Optional[int] = None,
    agora=None,
) -> CancelarNfeResult:
    """
    Cancela uma NF-e autorizada.

    Regras principais:
      - Só cancela documentos com status 'authorized' (senão InvalidState).
      - Motivo com no mínimo 15 caracteres (após strip).
      - Até 24h após a autorização.
      - Rejeição/indisponibilidade da SEFAZ mantêm o documento autorizado.
      - Registra auditoria no NfeAuditoria.
    """
    agora = agora or timezone.now()
    documento = obter_documento(documento_id, tenant_id=tenant_id)
    tenant_id = tenant_id if tenant_id is not None else documento.config.tenant_id

    motivo = _assert_pode_cancelar(documento, motivo, agora)

    client = sefaz_client or get_sefaz_client_for_config(documento.config)
    if timeout is None:
        timeout = float(getattr(settings, "NFE_SEFAZ_TIMEOUT_SEGUNDOS", 30))

    extra = {
        "event": "nfe_cancelar",
        "tenant_id": str(tenant_id),
        "user_id": user_id,
        "documento_id": str(documento.id),
        "chave_acesso": documento.chave_acesso,
        "numero": documento.numero,
        "serie": documento.serie,
    }

    try:
        resposta = client.cancelar(
            chave_acesso=documento.chave_acesso,
            protocolo=documento.protocolo or "",
            motivo=motivo,
            timeout=timeout,
        )
    except TransportNotImplemented:
        raise
    except Exception as exc:
        resposta = SefazIndisponivel(
            motivo=f"Erro técnico no evento de cancelamento: {exc}",
            raw={"erro": exc.__class__.__name__, "mensagem": str(exc)},
        )
        logger.exception("nfe_cancelar_erro_tecnico", extra={**extra, "error": str(exc)})

    if isinstance(resposta, SefazRejeitada):
        registrar_auditoria(
            tipo_evento="CANCELAMENTO_REJEITADO",
            documento=documento,
            tenant_id=tenant_id,
            user_id=user_id,
            codigo_retorno=resposta.codigo,
            mensagem_retorno=resposta.mensagem,
            raw=resposta.raw,
        )
        logger.warning(
            "nfe_cancelar_rejeitado",
            extra={**extra, "codigo_status": resposta.codigo, "outcome": "rejected"},
        )
        raise AuthorityRejected(
            codigo_sefaz=resposta.codigo,
            mensagem_sefaz=resposta.mensagem,
            documento_id=str(documento.id),
        )

    if isinstance(resposta, SefazIndisponivel):
        registrar_auditoria(
            tipo_evento="CANCELAMENTO_INDISPONIVEL",
            documento=documento,
            tenant_id=tenant_id,
            user_id=user_id,
            mensagem_retorno=resposta.motivo,
            raw=resposta.raw,
        )
        logger.warning("nfe_cancelar_indisponivel", extra={**extra, "outcome": "unavailable"})
        raise AuthorityUnavailable(documento_id=str(documento.id), motivo=resposta.motivo)

    if not isinstance(resposta, SefazCancelamentoHomologado):
        raise TypeError(f"Resposta inesperada do client SEFAZ: {type(resposta).__name__}")

    data_cancelamento = resposta.data_evento or timezone.now()

    with transaction.atomic():
        NfeStateMachine.para_cancelada(
            documento,
            campos={
                "cancelada": True,
                "motivo_cancelamento": motivo,
                "protocolo_cancelamento": resposta.protocolo,
                "data_cancelamento": data_cancelamento,
            },
            motivo="cancelamento_homologado",
        )
        definir_status_fiscal(
            fatura_id=documento.fatura_id,
            status=FaturaStatusFiscal.CANCELADA,
        )
        registrar_auditoria(
            tipo_evento="CANCELAMENTO",
            documento=documento,
            tenant_id=tenant_id,
            user_id=user_id,
            codigo_retorno=resposta.codigo,
            mensagem_retorno=resposta.mensagem,
            raw=resposta.raw,
        )

    logger.info(
        "nfe_cancelar",
        extra={**extra, "protocolo_cancelamento": resposta.protocolo, "outcome": "success"},
    )

    return CancelarNfeResult(
        documento_id=str(documento.id),
        fatura_id=str(documento.fatura_id),
        numero=documento.numero,
        serie=documento.serie,
        chave_acesso=documento.chave_acesso,
        protocolo_cancelamento=resposta.protocolo,
        status=documento.status,
        mensagem=resposta.mensagem,
        data_cancelamento=data_cancelamento.isoformat(),
    )
