# fiscal/sefaz_factory.py
"""
Factory de clients SEFAZ por ambiente / UF.

Objetivos:
- Isolar a escolha do client SEFAZ (simulador ou real) em um único ponto.
- Homologação usa SimuladorSefazClient, com modo vindo de NFE_SIMULADOR_MODO.
- Produção usa SefazProducaoClient (transporte ainda não implementado).
"""

from __future__ import annotations

from typing import Optional

from django.conf import settings

from fiscal.models import NfeAmbiente
from fiscal.sefaz_clients import (
    MODO_AUTORIZAR,
    SefazClientProtocol,
    SefazProducaoClient,
    SimuladorSefazClient,
)


def _normalize_ambiente(ambiente: str | None) -> str:
    """
    Normaliza o valor de ambiente vindo da configuração.

    Aceitamos variações comuns e convertemos para:
      - "homologacao"
      - "producao"
    """
    if not ambiente:
        return NfeAmbiente.HOMOLOGACAO

    amb = ambiente.strip().lower()
    if amb in {"homolog", "homologacao", "homologação", "teste", "staging"}:
        return NfeAmbiente.HOMOLOGACAO
    if amb in {"prod", "producao", "produção", "production"}:
        return NfeAmbiente.PRODUCAO

    # fallback conservador: nunca cair em produção por engano
    return NfeAmbiente.HOMOLOGACAO


def _normalize_uf(uf: str | None) -> str:
    """
    Normaliza a UF para duas letras maiúsculas.
    """
    if not uf:
        return "SP"
    return uf.strip().upper()


def get_sefaz_client_for_config(config, *, modo: Optional[str] = None) -> SefazClientProtocol:
    """
    Retorna o client SEFAZ apropriado para a configuração fiscal do tenant.

    - producao -> SefazProducaoClient
    - homologacao -> SimuladorSefazClient(modo=modo or settings.NFE_SIMULADOR_MODO)
    """
    uf = _normalize_uf(getattr(config, "uf", None))
    ambiente = _normalize_ambiente(getattr(config, "ambiente", None))

    if ambiente == NfeAmbiente.PRODUCAO:
        return SefazProducaoClient(ambiente=ambiente, uf=uf)

    modo = modo or getattr(settings, "NFE_SIMULADOR_MODO", MODO_AUTORIZAR)
    return SimuladorSefazClient(modo=modo, ambiente=ambiente, uf=uf)
