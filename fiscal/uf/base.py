# fiscal/uf/base.py
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class FiscalUFConfig:
    """
    Metadados fiscais por UF usados na montagem da chave de acesso e do XML.

    - uf: sigla ('SP', 'MG', ...)
    - codigo_ibge: código IBGE da UF com 2 dígitos (cUF)
    - nome: nome do estado
    """

    uf: str
    codigo_ibge: str
    nome: str
