from types import SimpleNamespace

from fiscal.sefaz_clients import MODO_REJEITAR, SefazProducaoClient, SimuladorSefazClient
from fiscal.sefaz_factory import get_sefaz_client_for_config


def _config(**kwargs):
    dados = {"uf": "SP", "ambiente": "homologacao"}
    dados.update(kwargs)
    return SimpleNamespace(**dados)


def test_homologacao_usa_simulador_com_modo_do_settings(settings):
    settings.NFE_SIMULADOR_MODO = MODO_REJEITAR

    client = get_sefaz_client_for_config(_config(uf="mg"))

    assert isinstance(client, SimuladorSefazClient)
    assert client.modo == MODO_REJEITAR
    assert client.ambiente == "homologacao"
    assert client.uf == "MG"


def test_modo_explicito_prevalece_sobre_settings(settings):
    settings.NFE_SIMULADOR_MODO = MODO_REJEITAR

    client = get_sefaz_client_for_config(_config(), modo="autorizar")

    assert client.modo == "autorizar"


def test_producao_usa_cliente_real():
    client = get_sefaz_client_for_config(_config(ambiente="producao", uf="RJ"))

    assert isinstance(client, SefazProducaoClient)
    assert client.uf == "RJ"


def test_ambiente_desconhecido_cai_em_homologacao():
    client = get_sefaz_client_for_config(_config(ambiente="qualquer-coisa", uf=""))

    assert isinstance(client, SimuladorSefazClient)
    assert client.uf == "SP"
