from datetime import timedelta
from io import StringIO

import pytest
from django.core.management import CommandError, call_command
from django.utils import timezone

from fiscal.models import NfeAuditoria, NfeDocumento, NfeStatus
from fiscal.services.geracao_service import gerar_nfe


@pytest.fixture
def documento_travado(tenant, nfe_config, fatura):
    gerado = gerar_nfe(tenant_id=tenant.id, fatura_id=fatura.id)
    NfeDocumento.objects.filter(id=gerado.documento_id).update(
        status=NfeStatus.PROCESSANDO,
        tentativas=1,
        ultima_tentativa=timezone.now() - timedelta(minutes=30),
    )
    return NfeDocumento.objects.get(id=gerado.documento_id)


@pytest.mark.django_db
def test_dry_run_nao_altera_documentos(documento_travado):
    out = StringIO()

    call_command("recuperar_nfe_processando", "--dry-run", stdout=out)

    assert str(documento_travado.id) in out.getvalue()
    assert "1 documento(s) seriam recuperados" in out.getvalue()
    documento_travado.refresh_from_db()
    assert documento_travado.status == NfeStatus.PROCESSANDO


@pytest.mark.django_db
def test_recupera_documentos_travados(documento_travado):
    out = StringIO()

    call_command("recuperar_nfe_processando", stdout=out)

    documento_travado.refresh_from_db()
    assert documento_travado.status == NfeStatus.PENDENTE
    assert documento_travado.tentativas == 1
    assert NfeAuditoria.objects.filter(
        documento=documento_travado, tipo_evento="PROCESSAMENTO_RECUPERADO"
    ).exists()
    assert "1 documento(s) recuperados" in out.getvalue()


@pytest.mark.django_db
def test_respeita_idade_minima(documento_travado):
    out = StringIO()

    call_command("recuperar_nfe_processando", "--segundos", "3600", stdout=out)

    documento_travado.refresh_from_db()
    assert documento_travado.status == NfeStatus.PROCESSANDO
    assert "0 documento(s)" in out.getvalue()


@pytest.mark.django_db
def test_segundos_negativo():
    with pytest.raises(CommandError):
        call_command("recuperar_nfe_processando", "--segundos", "-1")
