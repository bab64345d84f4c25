import pytest

from fiscal.exceptions import TransportNotImplemented
from fiscal.sefaz_clients import (
    MODO_INDISPONIVEL,
    MODO_REJEITAR,
    SefazAutorizada,
    SefazCancelamentoHomologado,
    SefazIndisponivel,
    SefazProducaoClient,
    SefazRejeitada,
    SimuladorSefazClient,
)

CHAVE = "35" + "0" * 41 + "7"


def test_simulador_autoriza_com_protocolo_de_15_digitos():
    client = SimuladorSefazClient(ambiente="homologacao", uf="SP")

    resp = client.autorizar(xml="<NFe/>", chave_acesso=CHAVE, timeout=5)

    assert isinstance(resp, SefazAutorizada)
    assert resp.codigo == "100"
    assert len(resp.protocolo) == 15
    assert resp.protocolo.isdigit()
    assert resp.data_autorizacao is not None
    assert resp.raw["ambiente"] == "homologacao"
    assert resp.raw["uf"] == "SP"
    assert resp.raw["chave_acesso"] == CHAVE
    assert client.chamadas == [{"operacao": "autorizar", "chave_acesso": CHAVE}]


def test_simulador_homologa_cancelamento():
    client = SimuladorSefazClient()

    resp = client.cancelar(
        chave_acesso=CHAVE,
        protocolo="135000000000001",
        motivo="Erro de digitação no valor da fatura",
    )

    assert isinstance(resp, SefazCancelamentoHomologado)
    assert resp.codigo == "135"
    assert len(resp.protocolo) == 15
    assert resp.data_evento is not None


def test_simulador_modo_rejeitar_devolve_codigo_configurado():
    client = SimuladorSefazClient(modo=MODO_REJEITAR, codigo_rejeicao="204", mensagem_rejeicao="Duplicidade")

    resp = client.autorizar(xml="<NFe/>", chave_acesso=CHAVE)

    assert isinstance(resp, SefazRejeitada)
    assert resp.codigo == "204"
    assert resp.mensagem == "Duplicidade"


def test_simulador_modo_indisponivel_nao_levanta_excecao():
    client = SimuladorSefazClient(modo=MODO_INDISPONIVEL)

    assert isinstance(client.autorizar(xml="<NFe/>", chave_acesso=CHAVE), SefazIndisponivel)
    assert isinstance(
        client.cancelar(chave_acesso=CHAVE, protocolo="1", motivo="x" * 20),
        SefazIndisponivel,
    )


def test_simulador_latencia_acima_do_timeout_vira_indisponivel():
    client = SimuladorSefazClient(latencia_segundos=10)

    resp = client.autorizar(xml="<NFe/>", chave_acesso=CHAVE, timeout=1)

    assert isinstance(resp, SefazIndisponivel)


def test_simulador_modo_desconhecido():
    with pytest.raises(ValueError):
        SimuladorSefazClient(modo="aprovar-tudo")


def test_cliente_producao_nao_implementado():
    client = SefazProducaoClient(uf="MG")

    with pytest.raises(TransportNotImplemented) as exc:
        client.autorizar(xml="<NFe/>", chave_acesso=CHAVE)
    assert exc.value.status_code == 501

    with pytest.raises(TransportNotImplemented):
        client.cancelar(chave_acesso=CHAVE, protocolo="1", motivo="x" * 20)
