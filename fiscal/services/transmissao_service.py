# fiscal/services/transmissao_service.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import List, Optional

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from financeiro.models import FaturaStatusFiscal
from financeiro.services.fatura_store import definir_status_fiscal
from fiscal.exceptions import (
    AttemptsExhausted,
    AuthorityRejected,
    AuthorityUnavailable,
    DuplicateAuthorization,
    InvalidState,
    TransportNotImplemented,
)
from fiscal.models import NfeDocumento, NfeStatus
from fiscal.sefaz_clients import (
    SefazAutorizada,
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
class TransmitirNfeResult:
    documento_id: str
    fatura_id: str
    numero: int
    serie: int
    chave_acesso: str
    status: str
    protocolo: Optional[str]
    codigo_status: Optional[str]
    motivo_status: Optional[str]
    data_autorizacao: Optional[str]
    tentativas: int


def _max_tentativas() -> int:
    return int(getattr(settings, "NFE_MAX_TENTATIVAS", 10))


def _processando_expira_em() -> timedelta:
    return timedelta(seconds=int(getattr(settings, "NFE_PROCESSANDO_EXPIRA_SEGUNDOS", 300)))


def _timeout_padrao() -> float:
    return float(getattr(settings, "NFE_SEFAZ_TIMEOUT_SEGUNDOS", 30))


def _processamento_expirado(documento: NfeDocumento, agora) -> bool:
    referencia = documento.ultima_tentativa or documento.updated_at
    return referencia is None or agora - referencia >= _processando_expira_em()


def _log_extra(documento: NfeDocumento, **extra) -> dict:
    base = {
        "event": "nfe_transmitir",
        "documento_id": str(documento.id),
        "fatura_id": str(documento.fatura_id),
        "numero": documento.numero,
        "serie": documento.serie,
        "chave_acesso": documento.chave_acesso,
        "tentativas": documento.tentativas,
    }
    base.update(extra)
    return base


def _build_result(documento: NfeDocumento) -> TransmitirNfeResult:
    return TransmitirNfeResult(
        documento_id=str(documento.id),
        fatura_id=str(documento.fatura_id),
        numero=documento.numero,
        serie=documento.serie,
        chave_acesso=documento.chave_acesso,
        status=documento.status,
        protocolo=documento.protocolo,
        codigo_status=documento.codigo_status,
        motivo_status=documento.motivo_status,
        data_autorizacao=documento.data_autorizacao.isoformat() if documento.data_autorizacao else None,
        tentativas=documento.tentativas,
    )


def _recuperar_processamento(documento: NfeDocumento, *, tenant_id, user_id, motivo: str) -> None:
    NfeStateMachine.para_pendente(documento, motivo=motivo)
    registrar_auditoria(
        tipo_evento="PROCESSAMENTO_RECUPERADO",
        documento=documento,
        tenant_id=tenant_id,
        user_id=user_id,
        mensagem_retorno=motivo,
    )


def transmitir_nfe(
    *,
    documento_id,
    tenant_id=None,
    sefaz_client: Optional[SefazClientProtocol] = None,
    timeout: Optional[float] = None,
    user_id: Optional[int] = None,
    agora=None,
) -> TransmitirNfeResult:
    """
    Transmite uma NF-e pendente (ou rejeitada) para a SEFAZ.

    Fluxo:
      1) PENDENTE/REJEITADA -> PROCESSANDO (compare-and-set), tentativas + 1.
         PROCESSANDO antigo (acima de NFE_PROCESSANDO_EXPIRA_SEGUNDOS) é
         devolvido para PENDENTE antes, e segue o fluxo normal.
      2) Chamada à SEFAZ fora de transação, com timeout.
      3) Resultado:
           - SefazAutorizada -> AUTORIZADA + fatura com status_fiscal "authorized"
           - SefazRejeitada -> REJEITADA e AuthorityRejected
           - SefazIndisponivel / erro técnico -> PENDENTE e AuthorityUnavailable
           - TransportNotImplemented (produção) -> PENDENTE e repassa a exceção
    O contador de numeração da configuração nunca é tocado aqui.
    """
    agora = agora or timezone.now()
    documento = obter_documento(documento_id, tenant_id=tenant_id)
    tenant_id = tenant_id if tenant_id is not None else documento.config.tenant_id

    if documento.status == NfeStatus.PROCESSANDO:
        if not _processamento_expirado(documento, agora):
            raise InvalidState("Documento já está em processamento na SEFAZ.", status_atual=documento.status)
        _recuperar_processamento(
            documento,
            tenant_id=tenant_id,
            user_id=user_id,
            motivo="Processamento expirado recuperado na retransmissão.",
        )

    if documento.status not in (NfeStatus.PENDENTE, NfeStatus.REJEITADA):
        raise InvalidState(
            f"Documento em status '{documento.status}' não pode ser transmitido.",
            status_atual=documento.status,
        )

    if documento.tentativas >= _max_tentativas():
        raise AttemptsExhausted(tentativas=documento.tentativas)

    ja_autorizada = (
        NfeDocumento.objects.filter(fatura_id=documento.fatura_id, status=NfeStatus.AUTORIZADA)
        .exclude(pk=documento.pk)
        .exists()
    )
    if ja_autorizada:
        raise DuplicateAuthorization()

    client = sefaz_client or get_sefaz_client_for_config(documento.config)
    timeout = timeout if timeout is not None else _timeout_padrao()

    NfeStateMachine.para_processando(
        documento,
        campos={"tentativas": documento.tentativas + 1, "ultima_tentativa": agora},
        motivo="transmissao",
    )

    try:
        resposta = client.autorizar(
            xml=documento.xml_envio,
            chave_acesso=documento.chave_acesso,
            timeout=timeout,
        )
    except TransportNotImplemented:
        NfeStateMachine.para_pendente(documento, motivo="transporte_nao_implementado")
        raise
    except Exception as exc:
        # qualquer falha do transporte deixa o documento retransmissível
        resposta = SefazIndisponivel(
            motivo=f"Erro técnico na comunicação com a SEFAZ: {exc}",
            raw={"erro": exc.__class__.__name__, "mensagem": str(exc)},
        )
        logger.exception(
            "nfe_transmitir_erro_tecnico",
            extra=_log_extra(documento, tenant_id=str(tenant_id), error=str(exc)),
        )

    if isinstance(resposta, SefazAutorizada):
        return _registrar_autorizacao(documento, resposta, tenant_id=tenant_id, user_id=user_id)

    if isinstance(resposta, SefazRejeitada):
        _registrar_rejeicao(documento, resposta, tenant_id=tenant_id, user_id=user_id)
        raise AuthorityRejected(
            codigo_sefaz=resposta.codigo,
            mensagem_sefaz=resposta.mensagem,
            documento_id=str(documento.id),
        )

    if isinstance(resposta, SefazIndisponivel):
        _registrar_indisponibilidade(documento, resposta, tenant_id=tenant_id, user_id=user_id)
        raise AuthorityUnavailable(documento_id=str(documento.id), motivo=resposta.motivo)

    raise TypeError(f"Resposta inesperada do client SEFAZ: {type(resposta).__name__}")


def _registrar_autorizacao(documento, resposta: SefazAutorizada, *, tenant_id, user_id) -> TransmitirNfeResult:
    data_autorizacao = resposta.data_autorizacao or timezone.now()

    try:
        with transaction.atomic():
            NfeStateMachine.para_autorizada(
                documento,
                campos={
                    "protocolo": resposta.protocolo,
                    "codigo_status": resposta.codigo,
                    "motivo_status": resposta.mensagem,
                    "data_autorizacao": data_autorizacao,
                },
                motivo="sefaz_autorizou",
            )
            definir_status_fiscal(
                fatura_id=documento.fatura_id,
                status=FaturaStatusFiscal.AUTORIZADA,
                numero_fiscal=documento.numero,
            )
            registrar_auditoria(
                tipo_evento="TRANSMISSAO_AUTORIZADA",
                documento=documento,
                tenant_id=tenant_id,
                user_id=user_id,
                codigo_retorno=resposta.codigo,
                mensagem_retorno=resposta.mensagem,
                raw=resposta.raw,
            )
    except IntegrityError:
        # outra NF-e da mesma fatura foi autorizada no meio do caminho
        NfeStateMachine.para_rejeitada(
            documento,
            campos={
                "codigo_status": "DUP",
                "motivo_status": "Fatura já possui NF-e autorizada.",
            },
            motivo="autorizacao_duplicada",
        )
        logger.error(
            "nfe_transmitir_autorizacao_duplicada",
            extra=_log_extra(documento, tenant_id=str(tenant_id), outcome="duplicate"),
        )
        raise DuplicateAuthorization()

    logger.info(
        "nfe_transmitir",
        extra=_log_extra(
            documento,
            tenant_id=str(tenant_id),
            user_id=user_id,
            protocolo=resposta.protocolo,
            codigo_status=resposta.codigo,
            outcome="authorized",
        ),
    )
    return _build_result(documento)


def _registrar_rejeicao(documento, resposta: SefazRejeitada, *, tenant_id, user_id) -> None:
    NfeStateMachine.para_rejeitada(
        documento,
        campos={"codigo_status": resposta.codigo, "motivo_status": resposta.mensagem},
        motivo="sefaz_rejeitou",
    )
    registrar_auditoria(
        tipo_evento="TRANSMISSAO_REJEITADA",
        documento=documento,
        tenant_id=tenant_id,
        user_id=user_id,
        codigo_retorno=resposta.codigo,
        mensagem_retorno=resposta.mensagem,
        raw=resposta.raw,
    )
    logger.warning(
        "nfe_transmitir_rejeitada",
        extra=_log_extra(
            documento,
            tenant_id=str(tenant_id),
            user_id=user_id,
            codigo_status=resposta.codigo,
            motivo_status=resposta.mensagem,
            outcome="rejected",
        ),
    )


def _registrar_indisponibilidade(documento, resposta: SefazIndisponivel, *, tenant_id, user_id) -> None:
    NfeStateMachine.para_pendente(
        documento,
        campos={"motivo_status": resposta.motivo},
        motivo="sefaz_indisponivel",
    )
    registrar_auditoria(
        tipo_evento="TRANSMISSAO_INDISPONIVEL",
        documento=documento,
        tenant_id=tenant_id,
        user_id=user_id,
        mensagem_retorno=resposta.motivo,
        raw=resposta.raw,
    )
    logger.warning(
        "nfe_transmitir_indisponivel",
        extra=_log_extra(
            documento,
            tenant_id=str(tenant_id),
            user_id=user_id,
            motivo=resposta.motivo,
            outcome="unavailable",
        ),
    )


def recuperar_processamentos_travados(
    *,
    segundos: Optional[int] = None,
    dry_run: bool = False,
    agora=None,
) -> List[str]:
    """
    Devolve para PENDENTE os documentos presos em PROCESSANDO há mais de
    `segundos` (padrão NFE_PROCESSANDO_EXPIRA_SEGUNDOS).

    Retorna os ids afetados (ou que seriam afetados, com dry_run=True).
    """
    agora = agora or timezone.now()
    limite = timedelta(seconds=segundos) if segundos is not None else _processando_expira_em()
    corte = agora - limite

    candidatos = NfeDocumento.objects.select_related("config").filter(
        status=NfeStatus.PROCESSANDO,
        ultima_tentativa__lte=corte,
    )

    recuperados: List[str] = []
    for documento in candidatos:
        if dry_run:
            recuperados.append(str(documento.id))
            continue
        try:
            _recuperar_processamento(
                documento,
                tenant_id=documento.config.tenant_id,
                user_id=None,
                motivo="Processamento expirado recuperado pela rotina de manutenção.",
            )
        except InvalidState:
            # outra requisição já resolveu o documento
            continue
        recuperados.append(str(documento.id))

    logger.info(
        "nfe_processamento_recuperado",
        extra={
            "event": "nfe_recuperar_processando",
            "quantidade": len(recuperados),
            "dry_run": dry_run,
        },
    )
    return recuperados
