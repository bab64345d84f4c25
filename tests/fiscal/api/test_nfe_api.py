import uuid
from datetime import timedelta

import pytest
from django.urls import reverse
from django.utils import timezone
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import AccessToken

from fiscal.models import NfeDocumento, NfeStatus
from tenants.models import TenantUsuario


def _gerar(api_client, fatura):
    resp = api_client.post(reverse("fiscal:nfe_gerar", kwargs={"fatura_id": fatura.id}))
    assert resp.status_code == 201, resp.json()
    return resp.json()["data"]


@pytest.mark.django_db
def test_fluxo_completo_gerar_transmitir_consultar_cancelar(api_client, nfe_config, fatura):
    gerado = _gerar(api_client, fatura)
    assert gerado["numero"] == 1
    assert gerado["status"] == "pending"
    documento_id = gerado["documento_id"]

    resp = api_client.post(reverse("fiscal:nfe_transmitir", kwargs={"documento_id": documento_id}), {}, format="json")
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["data"]["status"] == "authorized"
    assert body["data"]["protocolo"].isdigit()

    resp = api_client.get(reverse("fiscal:nfe_status", kwargs={"documento_id": documento_id}))
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "authorized"

    resp = api_client.post(
        reverse("fiscal:nfe_cancelar", kwargs={"documento_id": documento_id}),
        {"motivo": "erro no cadastro"},
        format="json",
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "cancelled"

    resp = api_client.get(reverse("fiscal:nfe_fatura", kwargs={"fatura_id": fatura.id}))
    assert [d["status"] for d in resp.json()["data"]] == ["cancelled"]


@pytest.mark.django_db
def test_transmitir_autorizada_retorna_409_no_envelope(api_client, nfe_config, fatura):
    documento_id = _gerar(api_client, fatura)["documento_id"]
    url = reverse("fiscal:nfe_transmitir", kwargs={"documento_id": documento_id})
    api_client.post(url, {}, format="json")

    resp = api_client.post(url, {}, format="json")

    assert resp.status_code == 409
    body = resp.json()
    assert body["success"] is False
    assert body["code"] == "FISCAL_4092"
    assert body["message"]


@pytest.mark.django_db
def test_rejeicao_retorna_422_com_codigo_da_sefaz(api_client, nfe_config, fatura, settings):
    settings.NFE_SIMULADOR_MODO = "rejeitar"
    documento_id = _gerar(api_client, fatura)["documento_id"]

    resp = api_client.post(reverse("fiscal:nfe_transmitir", kwargs={"documento_id": documento_id}), {}, format="json")

    assert resp.status_code == 422
    body = resp.json()
    assert body["code"] == "FISCAL_4221"
    assert body["errors"]["codigo_sefaz"] == "539"


@pytest.mark.django_db
def test_gerar_sem_certificado_retorna_400(api_client, fatura):
    resp = api_client.post(reverse("fiscal:nfe_gerar", kwargs={"fatura_id": fatura.id}))

    assert resp.status_code == 400
    assert resp.json()["code"] == "FISCAL_3001"


@pytest.mark.django_db
def test_gerar_fatura_inexistente_retorna_404(api_client, nfe_config):
    resp = api_client.post(reverse("fiscal:nfe_gerar", kwargs={"fatura_id": uuid.uuid4()}))

    assert resp.status_code == 404
    assert resp.json()["code"] == "FISCAL_4041"


@pytest.mark.django_db
def test_cancelar_motivo_curto_retorna_400(api_client, nfe_config, fatura):
    documento_id = _gerar(api_client, fatura)["documento_id"]
    api_client.post(reverse("fiscal:nfe_transmitir", kwargs={"documento_id": documento_id}), {}, format="json")

    resp = api_client.post(
        reverse("fiscal:nfe_cancelar", kwargs={"documento_id": documento_id}),
        {"motivo": "erro"},
        format="json",
    )

    assert resp.status_code == 400
    assert resp.json()["code"] == "FISCAL_4002"


@pytest.mark.django_db
def test_cancelar_fora_do_prazo_retorna_400(api_client, nfe_config, fatura):
    documento_id = _gerar(api_client, fatura)["documento_id"]
    api_client.post(reverse("fiscal:nfe_transmitir", kwargs={"documento_id": documento_id}), {}, format="json")
    NfeDocumento.objects.filter(id=documento_id).update(data_autorizacao=timezone.now() - timedelta(days=2))

    resp = api_client.post(
        reverse("fiscal:nfe_cancelar", kwargs={"documento_id": documento_id}),
        {"motivo": "erro no cadastro do cliente"},
        format="json",
    )

    assert resp.status_code == 400
    assert resp.json()["code"] == "FISCAL_4003"


@pytest.mark.django_db
def test_listar_documentos_filtra_por_status(api_client, nfe_config, fatura):
    _gerar(api_client, fatura)

    resp = api_client.get(reverse("fiscal:nfe_documentos"), {"status": "pending"})
    assert resp.status_code == 200
    assert len(resp.json()["data"]) == 1
    assert resp.json()["data"][0]["fatura"]["numero_fatura"] == fatura.numero_fatura

    resp = api_client.get(reverse("fiscal:nfe_documentos"), {"status": "authorized"})
    assert resp.json()["data"] == []

    resp = api_client.get(reverse("fiscal:nfe_documentos"), {"status": "qualquer"})
    assert resp.status_code == 400
    assert resp.json()["code"] == "VALIDATION_ERROR"


@pytest.mark.django_db
def test_download_do_xml(api_client, nfe_config, fatura):
    gerado = _gerar(api_client, fatura)

    resp = api_client.get(reverse("fiscal:nfe_xml", kwargs={"documento_id": gerado["documento_id"]}))

    assert resp.status_code == 200
    assert resp["Content-Type"].startswith("application/xml")
    assert resp["Content-Disposition"] == f'attachment; filename="NFe_{gerado["chave_acesso"]}.xml"'
    assert gerado["chave_acesso"] in resp.content.decode()


@pytest.mark.django_db
def test_status_de_documento_inexistente(api_client):
    resp = api_client.get(reverse("fiscal:nfe_status", kwargs={"documento_id": uuid.uuid4()}))

    assert resp.status_code == 404
    assert resp.json()["code"] == "FISCAL_4042"


@pytest.mark.django_db
def test_sem_autenticacao_retorna_401(tenant, fatura):
    client = APIClient()
    client.credentials(HTTP_X_TENANT_ID=str(tenant.id))

    resp = client.post(reverse("fiscal:nfe_gerar", kwargs={"fatura_id": fatura.id}))

    assert resp.status_code == 401
    assert resp.json()["success"] is False


@pytest.mark.django_db
def test_autenticacao_jwt_bearer(user, tenant, membership, nfe_config, fatura):
    client = APIClient()
    client.credentials(
        HTTP_AUTHORIZATION=f"Bearer {AccessToken.for_user(user)}",
        HTTP_X_TENANT_ID=str(tenant.id),
    )

    resp = client.post(reverse("fiscal:nfe_gerar", kwargs={"fatura_id": fatura.id}))

    assert resp.status_code == 201
    assert resp.json()["data"]["numero"] == 1


@pytest.mark.django_db
def test_sem_header_de_tenant_retorna_403(user, membership, fatura):
    client = APIClient()
    client.force_authenticate(user=user)

    resp = client.post(reverse("fiscal:nfe_gerar", kwargs={"fatura_id": fatura.id}))

    assert resp.status_code == 403
    assert resp.json()["code"] == "TENANT_1001"


@pytest.mark.django_db
def test_usuario_de_outro_tenant_retorna_403(api_client, outro_tenant, fatura):
    api_client.credentials(HTTP_X_TENANT_ID=str(outro_tenant.id))

    resp = api_client.post(reverse("fiscal:nfe_gerar", kwargs={"fatura_id": fatura.id}))

    assert resp.status_code == 403
    assert resp.json()["code"] == "AUTH_1006"


@pytest.mark.django_db
def test_sem_permissao_de_emissao_retorna_403(api_client, membership, nfe_config, fatura):
    TenantUsuario.objects.filter(pk=membership.pk).update(permissoes=[])

    resp = api_client.post(reverse("fiscal:nfe_gerar", kwargs={"fatura_id": fatura.id}))

    assert resp.status_code == 403
    assert resp.json()["code"] == "AUTH_1007"
    assert not NfeDocumento.objects.exists()


@pytest.mark.django_db
def test_tenant_sem_recurso_nfe_retorna_403(api_client, tenant, fatura):
    tenant.recursos = []
    tenant.save(update_fields=["recursos"])

    resp = api_client.get(reverse("fiscal:nfe_documentos"))

    assert resp.status_code == 403
    assert resp.json()["code"] == "TENANT_1002"


@pytest.mark.django_db
def test_consulta_nao_exige_permissao_de_emissao(api_client, membership, nfe_config, fatura):
    documento_id = _gerar(api_client, fatura)["documento_id"]
    TenantUsuario.objects.filter(pk=membership.pk).update(permissoes=[])

    resp = api_client.get(reverse("fiscal:nfe_status", kwargs={"documento_id": documento_id}))

    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == NfeStatus.PENDENTE
