import random
from datetime import datetime
from types import SimpleNamespace
from zoneinfo import ZoneInfo

import pytest

from fiscal.exceptions import InvalidConfigField
from fiscal.services.chave_acesso_service import (
    calcular_digito_verificador,
    gerar_chave_acesso,
    gerar_codigo_numerico,
    validar_chave_acesso,
)

SAO_PAULO = ZoneInfo("America/Sao_Paulo")


def _config(**kwargs):
    dados = {"uf": "SP", "cnpj": "11222333000181", "serie_nfe": 1}
    dados.update(kwargs)
    return SimpleNamespace(**dados)


def _dv_referencia(chave_sem_dv: str) -> str:
    pesos = [2, 3, 4, 5, 6, 7, 8, 9]
    soma = sum(int(d) * pesos[i % 8] for i, d in enumerate(reversed(chave_sem_dv)))
    resto = soma % 11
    return "0" if resto < 2 else str(11 - resto)


def test_chave_layout_primeira_nota():
    data = datetime(2024, 3, 15, 10, 0, tzinfo=SAO_PAULO)

    chave = gerar_chave_acesso(_config(), 1, codigo_numerico="12345678", data_emissao=data)

    assert len(chave) == 44
    assert chave.isdigit()
    assert chave[0:2] == "35"
    assert chave[2:6] == "2403"
    assert chave[6:20] == "11222333000181"
    assert chave[20:22] == "55"
    assert chave[22:25] == "001"
    assert chave[25:34] == "000000001"
    assert chave[34] == "1"
    assert chave[35:43] == "12345678"
    assert chave[43] == calcular_digito_verificador(chave[:43])


def test_chave_embute_numero_e_serie():
    chave = gerar_chave_acesso(_config(serie_nfe=7), 123456, codigo_numerico="00000001")

    assert chave[22:25] == "007"
    assert chave[25:34] == "000123456"


def test_chave_usa_codigo_ibge_da_uf():
    chave = gerar_chave_acesso(_config(uf="MG"), 1, codigo_numerico="00000001")

    assert chave[:2] == "31"


def test_aamm_usa_fuso_local():
    # 01/04 02:00 UTC ainda é 31/03 em São Paulo
    data_utc = datetime(2024, 4, 1, 2, 0, tzinfo=ZoneInfo("UTC"))

    chave = gerar_chave_acesso(_config(), 1, codigo_numerico="00000001", data_emissao=data_utc)

    assert chave[2:6] == "2403"


def test_digito_verificador_bate_com_referencia_em_muitas_entradas():
    rnd = random.Random(2024)
    vistos = set()

    for _ in range(500):
        chave_sem_dv = "".join(str(rnd.randint(0, 9)) for _ in range(43))
        dv = calcular_digito_verificador(chave_sem_dv)

        assert dv == _dv_referencia(chave_sem_dv)
        assert len(dv) == 1 and dv.isdigit()
        vistos.add(dv)

    # o dígito não é constante
    assert len(vistos) > 1


def test_digito_verificador_zero_quando_resto_menor_que_dois():
    # soma = 0 -> resto 0
    assert calcular_digito_verificador("0" * 43) == "0"


def test_digito_verificador_exemplo_conhecido():
    # 1 no último dígito: peso 2 -> soma 2 -> resto 2 -> 11 - 2 = 9
    assert calcular_digito_verificador("0" * 42 + "1") == "9"


def test_codigo_numerico_tem_8_digitos():
    for _ in range(50):
        cnf = gerar_codigo_numerico()
        assert len(cnf) == 8
        assert cnf.isdigit()


@pytest.mark.parametrize(
    "chave,esperado",
    [
        (None, False),
        ("", False),
        ("1" * 43, False),
        ("a" * 44, False),
    ],
)
def test_validar_chave_entradas_invalidas(chave, esperado):
    assert validar_chave_acesso(chave) is esperado


def test_validar_chave_gerada_e_adulterada():
    chave = gerar_chave_acesso(_config(), 42, codigo_numerico="87654321")
    assert validar_chave_acesso(chave)

    dv_errado = str((int(chave[-1]) + 1) % 10)
    assert not validar_chave_acesso(chave[:-1] + dv_errado)


@pytest.mark.parametrize(
    "serie, numero",
    [(1000, 1), (-1, 1), (1, 0), (1, 1_000_000_000)],
)
def test_chave_recusa_serie_ou_numero_fora_do_layout(serie, numero):
    with pytest.raises(InvalidConfigField):
        gerar_chave_acesso(_config(serie_nfe=serie), numero, codigo_numerico="00000001")


def test_chave_com_serie_e_numero_maximos_tem_44_digitos():
    chave = gerar_chave_acesso(_config(serie_nfe=999), 999_999_999, codigo_numerico="00000001")

    assert len(chave) == 44
    assert chave[22:25] == "999"
    assert chave[25:34] == "999999999"
