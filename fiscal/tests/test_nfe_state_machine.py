import logging

import pytest

from fiscal.exceptions import InvalidState
from fiscal.models import NfeDocumento, NfeStatus
from fiscal.services.geracao_service import gerar_nfe
from fiscal.services.nfe_state_machine import NfeStateMachine


@pytest.fixture
def documento(tenant, nfe_config, fatura):
    result = gerar_nfe(tenant_id=tenant.id, fatura_id=fatura.id)
    return NfeDocumento.objects.get(id=result.documento_id)


@pytest.mark.django_db
def test_transicao_valida_grava_campos_e_loga(documento, caplog):
    caplog.set_level(logging.INFO, logger="vet.fiscal")

    NfeStateMachine.para_processando(documento, campos={"tentativas": 1}, motivo="teste")

    documento.refresh_from_db()
    assert documento.status == NfeStatus.PROCESSANDO
    assert documento.tentativas == 1

    eventos = [r for r in caplog.records if getattr(r, "event", None) == "nfe_status_transicao"]
    assert eventos
    assert eventos[-1].status_anterior == NfeStatus.PENDENTE
    assert eventos[-1].status_novo == NfeStatus.PROCESSANDO
    assert eventos[-1].documento_id == str(documento.id)


@pytest.mark.django_db
@pytest.mark.parametrize(
    "destino",
    [NfeStatus.AUTORIZADA, NfeStatus.CANCELADA, NfeStatus.REJEITADA, NfeStatus.PENDENTE],
)
def test_transicoes_invalidas_a_partir_de_pendente(documento, destino):
    with pytest.raises(InvalidState):
        NfeStateMachine.mudar_status(documento, destino)

    documento.refresh_from_db()
    assert documento.status == NfeStatus.PENDENTE


@pytest.mark.django_db
def test_cancelada_e_terminal(documento):
    NfeDocumento.objects.filter(pk=documento.pk).update(status=NfeStatus.CANCELADA)
    documento.refresh_from_db()

    for destino in NfeStatus.values:
        with pytest.raises(InvalidState):
            NfeStateMachine.mudar_status(documento, destino)


@pytest.mark.django_db
def test_conflito_de_concorrencia_compare_and_set(documento, caplog):
    """
    Duas instâncias do mesmo documento: a segunda transição parte de um
    status desatualizado e não pode sobrescrever a primeira.
    """
    copia = NfeDocumento.objects.get(pk=documento.pk)

    NfeStateMachine.para_processando(documento)

    with pytest.raises(InvalidState):
        NfeStateMachine.para_processando(copia)

    assert any(getattr(r, "event", None) == "nfe_status_conflito" for r in caplog.records)
    documento.refresh_from_db()
    assert documento.status == NfeStatus.PROCESSANDO
