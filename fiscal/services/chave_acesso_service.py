# fiscal/services/chave_acesso_service.py
"""
Geração da chave de acesso da NF-e (44 dígitos).

Layout:
    cUF(2) + AAMM(4) + CNPJ(14) + mod(2) + serie(3) + nNF(9)
    + tpEmis(1) + cNF(8) + cDV(1)
"""

from __future__ import annotations

import secrets
from datetime import datetime

from django.utils import timezone

from fiscal.exceptions import InvalidConfigField
from fiscal.uf import codigo_uf

MODELO_NFE = "55"
TIPO_EMISSAO_NORMAL = "1"
TAMANHO_CHAVE = 44
SERIE_MAXIMA = 999
NUMERO_MAXIMO = 999_999_999


def _somente_digitos(valor: str | None) -> str:
    return "".join(ch for ch in (valor or "") if ch.isdigit())


def calcular_digito_verificador(chave_sem_dv: str) -> str:
    """
    Dígito verificador módulo 11 sobre os 43 primeiros dígitos.

    Pesos 2..9 aplicados da direita para a esquerda, reiniciando em 2.
    resto < 2 -> 0; senão 11 - resto.
    """
    peso = 2
    soma = 0

    for digito in reversed(chave_sem_dv):
        soma += int(digito) * peso
        peso += 1
        if peso > 9:
            peso = 2

    resto = soma % 11
    if resto < 2:
        return "0"
    return str(11 - resto)


def gerar_codigo_numerico() -> str:
    """cNF: 8 dígitos aleatórios."""
    return f"{secrets.randbelow(10**8):08d}"


def gerar_chave_acesso(
    config,
    numero: int,
    *,
    codigo_numerico: str,
    data_emissao: datetime | None = None,
) -> str:
    """
    Monta a chave de acesso para o número/série da configuração do tenant.

    AAMM usa a data de emissão no fuso local (TIME_ZONE do projeto).
    Série acima de 3 dígitos ou número acima de 9 dígitos levantam
    InvalidConfigField.
    """
    if not 0 <= int(config.serie_nfe) <= SERIE_MAXIMA:
        raise InvalidConfigField(f"Série {config.serie_nfe} não cabe na chave de acesso.", campo="serie_nfe")
    if not 1 <= int(numero) <= NUMERO_MAXIMO:
        raise InvalidConfigField(f"Número {numero} não cabe na chave de acesso.", campo="numero")

    data_emissao = data_emissao or timezone.now()
    if timezone.is_aware(data_emissao):
        data_emissao = timezone.localtime(data_emissao)

    cuf = codigo_uf(getattr(config, "uf", None))
    aamm = data_emissao.strftime("%y%m")
    cnpj = _somente_digitos(config.cnpj).zfill(14)[-14:]
    serie = str(config.serie_nfe).zfill(3)
    nnf = str(numero).zfill(9)
    cnf = _somente_digitos(codigo_numerico).zfill(8)[-8:]

    chave_sem_dv = f"{cuf}{aamm}{cnpj}{MODELO_NFE}{serie}{nnf}{TIPO_EMISSAO_NORMAL}{cnf}"
    return chave_sem_dv + calcular_digito_verificador(chave_sem_dv)


def validar_chave_acesso(chave: str | None) -> bool:
    if not chave or len(chave) != TAMANHO_CHAVE or not chave.isdigit():
        return False
    return calcular_digito_verificador(chave[:-1]) == chave[-1]
