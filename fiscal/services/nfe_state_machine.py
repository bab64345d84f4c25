# fiscal/services/nfe_state_machine.py

from __future__ import annotations

import logging
from typing import Iterable

from django.utils import timezone

from fiscal.exceptions import InvalidState
from fiscal.models import NfeDocumento, NfeStatus

logger = logging.getLogger("vet.fiscal")


# Matriz de transições permitidas:
# - PENDENTE: gerada, aguardando transmissão
# - PROCESSANDO: chamada à SEFAZ em andamento
# - AUTORIZADA / REJEITADA: resposta da SEFAZ
# - CANCELADA: terminal
TRANSICOES_VALIDAS: dict[str, set[str]] = {
    NfeStatus.PENDENTE: {NfeStatus.PROCESSANDO},
    # PROCESSANDO volta a PENDENTE em falha técnica/timeout
    # ou quando o processamento travado é recuperado.
    NfeStatus.PROCESSANDO: {
        NfeStatus.AUTORIZADA,
        NfeStatus.REJEITADA,
        NfeStatus.PENDENTE,
    },
    # Retransmissão de rejeitada é permitida (e conta tentativa).
    NfeStatus.REJEITADA: {NfeStatus.PROCESSANDO},
    NfeStatus.AUTORIZADA: {NfeStatus.CANCELADA},
    NfeStatus.CANCELADA: set(),
}


class NfeStateMachine:
    """
    ÚNICO ponto autorizado a trocar o status de um NfeDocumento.

    Cada transição é um compare-and-set no banco:
        UPDATE nfe_documento SET status=<novo>, ... WHERE id=<id> AND status=<atual>
    Se outra requisição mudou o status antes, nenhuma linha é afetada e a
    transição falha com InvalidState; assim duas transmissões concorrentes
    do mesmo documento nunca chegam juntas à SEFAZ.
    """

    @classmethod
    def mudar_status(
        cls,
        documento: NfeDocumento,
        novo_status: str,
        *,
        campos: dict | None = None,
        motivo: str | None = None,
        extra_context: dict | None = None,
    ) -> None:
        """
        - Valida se a transição é permitida a partir do status atual.
        - Grava o novo status e os `campos` extras na mesma instrução UPDATE.
        - Atualiza a instância em memória só depois do UPDATE confirmado.
        """
        status_atual = documento.status

        permitidos: Iterable[str] = TRANSICOES_VALIDAS.get(status_atual, set())
        if novo_status not in permitidos:
            raise InvalidState(
                f"Transição de '{status_atual}' para '{novo_status}' não é permitida "
                f"para o documento {documento.id}.",
                status_atual=status_atual,
                status_novo=novo_status,
            )

        valores = {"status": novo_status, "updated_at": timezone.now()}
        if campos:
            valores.update(campos)

        atualizados = NfeDocumento.objects.filter(
            pk=documento.pk,
            status=status_atual,
        ).update(**valores)

        if atualizados == 0:
            logger.warning(
                "nfe_status_conflito",
                extra={
                    "event": "nfe_status_conflito",
                    "documento_id": str(documento.pk),
                    "status_esperado": status_atual,
                    "status_novo": novo_status,
                },
            )
            raise InvalidState(
                f"Documento {documento.id} foi alterado por outra operação "
                f"(status esperado '{status_atual}').",
                status_atual=status_atual,
                status_novo=novo_status,
            )

        for nome, valor in valores.items():
            setattr(documento, nome, valor)

        context = {
            "event": "nfe_status_transicao",
            "documento_id": str(documento.pk),
            "fatura_id": str(documento.fatura_id),
            "numero": documento.numero,
            "serie": documento.serie,
            "status_anterior": status_atual,
            "status_novo": novo_status,
            "motivo": motivo,
        }
        if extra_context:
            context.update(extra_context)

        logger.info("nfe_status_transicao", extra=context)

    # Atalhos para melhorar leitura nos services:

    @classmethod
    def para_processando(cls, documento: NfeDocumento, **kwargs) -> None:
        cls.mudar_status(documento, NfeStatus.PROCESSANDO, **kwargs)

    @classmethod
    def para_autorizada(cls, documento: NfeDocumento, **kwargs) -> None:
        cls.mudar_status(documento, NfeStatus.AUTORIZADA, **kwargs)

    @classmethod
    def para_rejeitada(cls, documento: NfeDocumento, **kwargs) -> None:
        cls.mudar_status(documento, NfeStatus.REJEITADA, **kwargs)

    @classmethod
    def para_pendente(cls, documento: NfeDocumento, **kwargs) -> None:
        cls.mudar_status(documento, NfeStatus.PENDENTE, **kwargs)

    @classmethod
    def para_cancelada(cls, documento: NfeDocumento, **kwargs) -> None:
        cls.mudar_status(documento, NfeStatus.CANCELADA, **kwargs)
