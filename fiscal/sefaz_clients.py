"""
Camada de client SEFAZ.

Este módulo define:

- Os resultados possíveis de uma chamada à SEFAZ, como tipos distintos:
    SefazAutorizada | SefazRejeitada | SefazIndisponivel
  (e SefazCancelamentoHomologado para o evento de cancelamento).
- O contrato SefazClientProtocol consumido pelas services.
- SimuladorSefazClient, usado em homologação/desenvolvimento/testes.
- SefazProducaoClient, ponto de entrada do transporte real (ainda não
  implementado: sempre levanta TransportNotImplemented).
"""

from __future__ import annotations

import logging
import secrets
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Union

from django.utils import timezone

from fiscal.exceptions import TransportNotImplemented

logger = logging.getLogger("vet.fiscal")


# ---------------------------------------------------------------------------
# Resultados da SEFAZ
# ---------------------------------------------------------------------------


@dataclass
class SefazAutorizada:
    """
    Autorização de uso concedida (cStat 100).
    """

    protocolo: str
    codigo: str = "100"
    mensagem: str = "Autorizado o uso da NF-e"
    data_autorizacao: Any = None
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass
class SefazCancelamentoHomologado:
    """
    Evento de cancelamento registrado (cStat 135).
    """

    protocolo: str
    codigo: str = "135"
    mensagem: str = "Evento registrado e vinculado a NF-e"
    data_evento: Any = None
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass
class SefazRejeitada:
    """
    Rejeição de regra de negócio (ex: 539 duplicidade, 204 chave duplicada).
    """

    codigo: str
    mensagem: str
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass
class SefazIndisponivel:
    """
    Falha técnica: timeout, conexão recusada, SEFAZ em manutenção.
    O documento deve continuar retransmissível.
    """

    motivo: str
    raw: Dict[str, Any] = field(default_factory=dict)


RespostaAutorizacao = Union[SefazAutorizada, SefazRejeitada, SefazIndisponivel]
RespostaCancelamento = Union[SefazCancelamentoHomologado, SefazRejeitada, SefazIndisponivel]


# ---------------------------------------------------------------------------
# Contrato do client SEFAZ
# ---------------------------------------------------------------------------


class SefazClientProtocol(Protocol):
    """
    Contrato mínimo que um client SEFAZ deve cumprir.

    As services de transmissão/cancelamento dependem deste protocolo,
    e não da implementação concreta. Falhas técnicas devem voltar como
    SefazIndisponivel (não como exceção).
    """

    def autorizar(
        self,
        *,
        xml: str,
        chave_acesso: str,
        timeout: Optional[float] = None,
    ) -> RespostaAutorizacao:
        ...

    def cancelar(
        self,
        *,
        chave_acesso: str,
        protocolo: str,
        motivo: str,
        timeout: Optional[float] = None,
    ) -> RespostaCancelamento:
        ...


# ---------------------------------------------------------------------------
# Simulador (homologação)
# ---------------------------------------------------------------------------


MODO_AUTORIZAR = "autorizar"
MODO_REJEITAR = "rejeitar"
MODO_INDISPONIVEL = "indisponivel"
MODOS_SIMULADOR = {MODO_AUTORIZAR, MODO_REJEITAR, MODO_INDISPONIVEL}


class SimuladorSefazClient:
    """
    Simulador de SEFAZ para homologação.

    Por padrão autoriza tudo, com protocolo numérico de 15 dígitos.
    O modo pode ser trocado para exercitar os caminhos de rejeição e de
    indisponibilidade:

      - "autorizar": sempre autoriza (cStat 100) / homologa cancelamento (135)
      - "rejeitar": sempre rejeita com codigo_rejeicao/mensagem_rejeicao
      - "indisponivel": sempre devolve SefazIndisponivel

    latencia_segundos simula o tempo de resposta; se for maior que o timeout
    pedido pelo chamador, a resposta é SefazIndisponivel (timeout).

    Cada chamada fica registrada em `chamadas` (útil em testes).
    """

    def __init__(
        self,
        *,
        modo: str = MODO_AUTORIZAR,
        ambiente: str = "homologacao",
        uf: Optional[str] = None,
        codigo_rejeicao: str = "539",
        mensagem_rejeicao: str = "Rejeicao: Duplicidade de NF-e, com diferenca na Chave de Acesso",
        latencia_segundos: float = 0.0,
    ):
        if modo not in MODOS_SIMULADOR:
            raise ValueError(f"Modo de simulador SEFAZ desconhecido: {modo!r}")
        self.modo = modo
        self.ambiente = ambiente
        self.uf = uf or "SP"
        self.codigo_rejeicao = codigo_rejeicao
        self.mensagem_rejeicao = mensagem_rejeicao
        self.latencia_segundos = latencia_segundos
        self.chamadas: List[Dict[str, Any]] = []

    def _protocolo(self) -> str:
        return f"{secrets.randbelow(10**15):015d}"

    def _raw(self, **dados) -> Dict[str, Any]:
        return {"ambiente": self.ambiente, "uf": self.uf, "simulado": True, **dados}

    def _estourou_timeout(self, timeout: Optional[float]) -> bool:
        if self.latencia_segundos <= 0:
            return False
        if timeout is not None and self.latencia_segundos > timeout:
            return True
        time.sleep(self.latencia_segundos)
        return False

    def autorizar(
        self,
        *,
        xml: str,
        chave_acesso: str,
        timeout: Optional[float] = None,
    ) -> RespostaAutorizacao:
        self.chamadas.append({"operacao": "autorizar", "chave_acesso": chave_acesso})

        if self.modo == MODO_INDISPONIVEL or self._estourou_timeout(timeout):
            motivo = "Falha técnica simulada na comunicação com a SEFAZ."
            return SefazIndisponivel(motivo=motivo, raw=self._raw(motivo=motivo))

        if self.modo == MODO_REJEITAR:
            return SefazRejeitada(
                codigo=self.codigo_rejeicao,
                mensagem=self.mensagem_rejeicao,
                raw=self._raw(
                    codigo=self.codigo_rejeicao,
                    mensagem=self.mensagem_rejeicao,
                    chave_acesso=chave_acesso,
                ),
            )

        protocolo = self._protocolo()
        agora = timezone.now()
        resposta = SefazAutorizada(protocolo=protocolo, data_autorizacao=agora)
        resposta.raw = self._raw(
            codigo=resposta.codigo,
            mensagem=resposta.mensagem,
            protocolo=protocolo,
            chave_acesso=chave_acesso,
            data_autorizacao=agora.isoformat(),
        )
        return resposta

    def cancelar(
        self,
        *,
        chave_acesso: str,
        protocolo: str,
        motivo: str,
        timeout: Optional[float] = None,
    ) -> RespostaCancelamento:
        self.chamadas.append(
            {"operacao": "cancelar", "chave_acesso": chave_acesso, "protocolo": protocolo}
        )

        if self.modo == MODO_INDISPONIVEL or self._estourou_timeout(timeout):
            motivo_falha = "Falha técnica simulada no evento de cancelamento."
            return SefazIndisponivel(motivo=motivo_falha, raw=self._raw(motivo=motivo_falha))

        if self.modo == MODO_REJEITAR:
            return SefazRejeitada(
                codigo=self.codigo_rejeicao,
                mensagem=self.mensagem_rejeicao,
                raw=self._raw(codigo=self.codigo_rejeicao, mensagem=self.mensagem_rejeicao),
            )

        protocolo_evento = self._protocolo()
        agora = timezone.now()
        resposta = SefazCancelamentoHomologado(protocolo=protocolo_evento, data_evento=agora)
        resposta.raw = self._raw(
            codigo=resposta.codigo,
            mensagem=resposta.mensagem,
            protocolo=protocolo_evento,
            chave_acesso=chave_acesso,
            motivo=motivo,
        )
        return resposta


# ---------------------------------------------------------------------------
# Produção
# ---------------------------------------------------------------------------


class SefazProducaoClient:
    """
    Transporte real (SOAP + TLS mútuo com o A1) ainda não existe.
    Qualquer chamada levanta TransportNotImplemented.
    """

    def __init__(self, *, ambiente: str = "producao", uf: Optional[str] = None):
        self.ambiente = ambiente
        self.uf = uf or "SP"

    def autorizar(self, *, xml: str, chave_acesso: str, timeout: Optional[float] = None):
        logger.error(
            "sefaz_producao_nao_implementada",
            extra={"event": "sefaz_autorizar", "uf": self.uf, "chave_acesso": chave_acesso},
        )
        raise TransportNotImplemented()

    def cancelar(
        self,
        *,
        chave_acesso: str,
        protocolo: str,
        motivo: str,
        timeout: Optional[float] = None,
    ):
        logger.error(
            "sefaz_producao_nao_implementada",
            extra={"event": "sefaz_cancelar", "uf": self.uf, "chave_acesso": chave_acesso},
        )
        raise TransportNotImplemented()
