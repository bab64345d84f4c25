# fiscal/uf/__init__.py
from __future__ import annotations

from typing import Dict

from .base import FiscalUFConfig


UF_PADRAO = "SP"

# Tabela IBGE das 27 unidades federativas
_UF_CONFIGS: Dict[str, FiscalUFConfig] = {
    cfg.uf: cfg
    for cfg in (
        FiscalUFConfig("AC", "12", "Acre"),
        FiscalUFConfig("AL", "27", "Alagoas"),
        FiscalUFConfig("AP", "16", "Amapá"),
        FiscalUFConfig("AM", "13", "Amazonas"),
        FiscalUFConfig("BA", "29", "Bahia"),
        FiscalUFConfig("CE", "23", "Ceará"),
        FiscalUFConfig("DF", "53", "Distrito Federal"),
        FiscalUFConfig("ES", "32", "Espírito Santo"),
        FiscalUFConfig("GO", "52", "Goiás"),
        FiscalUFConfig("MA", "21", "Maranhão"),
        FiscalUFConfig("MT", "51", "Mato Grosso"),
        FiscalUFConfig("MS", "50", "Mato Grosso do Sul"),
        FiscalUFConfig("MG", "31", "Minas Gerais"),
        FiscalUFConfig("PA", "15", "Pará"),
        FiscalUFConfig("PB", "25", "Paraíba"),
        FiscalUFConfig("PR", "41", "Paraná"),
        FiscalUFConfig("PE", "26", "Pernambuco"),
        FiscalUFConfig("PI", "22", "Piauí"),
        FiscalUFConfig("RJ", "33", "Rio de Janeiro"),
        FiscalUFConfig("RN", "24", "Rio Grande do Norte"),
        FiscalUFConfig("RS", "43", "Rio Grande do Sul"),
        FiscalUFConfig("RO", "11", "Rondônia"),
        FiscalUFConfig("RR", "14", "Roraima"),
        FiscalUFConfig("SC", "42", "Santa Catarina"),
        FiscalUFConfig("SP", "35", "São Paulo"),
        FiscalUFConfig("SE", "28", "Sergipe"),
        FiscalUFConfig("TO", "17", "Tocantins"),
    )
}


def get_uf_config(uf: str | None) -> FiscalUFConfig:
    """
    Retorna a configuração fiscal para a UF informada.

    Regras:
      - Normaliza UF para maiúsculas.
      - Se vier None ou string vazia, assume 'SP' como default.
      - Se UF não estiver mapeada, também faz fallback para 'SP'.
    """
    if not uf:
        return _UF_CONFIGS[UF_PADRAO]

    key = uf.strip().upper()
    return _UF_CONFIGS.get(key, _UF_CONFIGS[UF_PADRAO])


def codigo_uf(uf: str | None) -> str:
    """Código IBGE (cUF) da UF; '35' (SP) quando ausente ou desconhecida."""
    return get_uf_config(uf).codigo_ibge


def uf_valida(uf: str | None) -> bool:
    return bool(uf) and uf.strip().upper() in _UF_CONFIGS
