# tests/tenants/test_tenant_provisioning.py

import pytest
from django.contrib.auth import get_user_model
from django.urls import reverse
from rest_framework.test import APIClient

from fiscal.models import NfeConfig
from tenants.models import Tenant, TenantUsuario

TOKEN = "token-provisionamento-teste"


def _payload(**kwargs):
    dados = {
        "nome": "Clínica Bicho Feliz",
        "documento": "11.222.333/0001-81",
        "admin": {"username": "admin-bicho-feliz", "email": "admin@bichofeliz.com.br"},
    }
    dados.update(kwargs)
    return dados


def _post(payload, token=TOKEN):
    client = APIClient()
    headers = {"HTTP_X_TENANT_PROVISIONING_TOKEN": token} if token else {}
    return client.post(reverse("tenants:criar-tenant"), payload, format="json", **headers)


@pytest.mark.django_db
def test_provisiona_tenant_admin_e_config_fiscal():
    resp = _post(_payload())

    assert resp.status_code == 201, resp.json()
    data = resp.json()["data"]

    tenant = Tenant.objects.get(id=data["tenant_id"])
    assert tenant.documento == "11222333000181"
    assert tenant.recursos == ["nfe"]

    admin = get_user_model().objects.get(id=data["admin_user_id"])
    assert not admin.has_usable_password()

    vinculo = TenantUsuario.objects.get(tenant=tenant, user_id=admin.id)
    assert vinculo.is_admin
    assert vinculo.tem_permissao("manage_fiscal")

    config = NfeConfig.objects.get(tenant=tenant)
    assert config.ambiente == "homologacao"
    assert config.ultimo_numero_nfe == 0
    assert data["nfe_config_id"] == str(config.id)


@pytest.mark.django_db
def test_documento_duplicado_retorna_400():
    assert _post(_payload()).status_code == 201

    resp = _post(_payload(admin={"username": "outro-admin"}))

    assert resp.status_code == 400
    assert resp.json()["code"] == "tenant_already_exists"
    assert Tenant.objects.count() == 1


@pytest.mark.django_db
def test_username_duplicado_retorna_400_sem_criar_tenant():
    assert _post(_payload()).status_code == 201

    resp = _post(_payload(documento="98765432000198"))

    assert resp.status_code == 400
    assert resp.json()["code"] == "username_already_exists"
    assert Tenant.objects.count() == 1


@pytest.mark.django_db
@pytest.mark.parametrize(
    "alteracao",
    [
        {"documento": "123"},
        {"nome": ""},
        {"recursos": ["estoque"]},
        {"admin": {}},
    ],
)
def test_payload_invalido(alteracao):
    resp = _post(_payload(**alteracao))

    assert resp.status_code == 400
    assert resp.json()["code"] == "VALIDATION_ERROR"
    assert not Tenant.objects.exists()


@pytest.mark.django_db
@pytest.mark.parametrize("token", [None, "token-errado"])
def test_token_de_provisionamento_obrigatorio(token):
    resp = _post(_payload(), token=token)

    assert resp.status_code in (401, 403)
    assert not Tenant.objects.exists()


@pytest.mark.django_db
def test_sem_token_configurado_no_servidor_nega(settings):
    settings.TENANT_PROVISIONING_TOKEN = ""

    resp = _post(_payload())

    assert resp.status_code in (401, 403)
