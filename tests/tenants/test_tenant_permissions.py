import pytest
from rest_framework.exceptions import PermissionDenied
from rest_framework.test import APIRequestFactory

from tenants.models import TenantUsuario
from tenants.permissions import IsTenantMember, requer_recurso


def _request(user, tenant):
    request = APIRequestFactory().get("/qualquer/")
    request.user = user
    request.tenant = tenant
    return request


@pytest.mark.django_db
def test_membro_do_tenant_passa_e_recebe_vinculo(user, tenant, membership):
    request = _request(user, tenant)

    assert IsTenantMember().has_permission(request, view=None)
    assert request.tenant_usuario == membership


@pytest.mark.django_db
def test_tenant_inativo(user, tenant, membership):
    tenant.ativo = False

    with pytest.raises(PermissionDenied) as exc:
        IsTenantMember().has_permission(_request(user, tenant), view=None)

    assert exc.value.detail["code"] == "TENANT_1001"


@pytest.mark.django_db
def test_admin_tem_todas_as_permissoes(user, tenant):
    vinculo = TenantUsuario.objects.create(tenant=tenant, user_id=user.id, is_admin=True)
    permissao = requer_recurso("nfe", "qualquer_permissao")

    assert vinculo.tem_permissao("qualquer_permissao")
    assert permissao().has_permission(_request(user, tenant), view=None)


@pytest.mark.django_db
def test_requer_recurso_monta_classes_distintas(user, tenant, membership):
    pode_emitir = requer_recurso("nfe", "create_invoice")
    pode_nfse = requer_recurso("nfse")

    assert issubclass(pode_emitir, IsTenantMember)
    assert pode_emitir().has_permission(_request(user, tenant), view=None)

    with pytest.raises(PermissionDenied) as exc:
        pode_nfse().has_permission(_request(user, tenant), view=None)
    assert exc.value.detail["code"] == "TENANT_1002"
