# conftest.py (na raiz do projeto)

import logging
from datetime import timedelta
from decimal import Decimal

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import BestAvailableEncryption, pkcs12
from cryptography.x509.oid import NameOID
from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APIClient

from financeiro.models import Cliente, Fatura, FaturaItem, FormaPagamento
from fiscal.models import NfeConfig
from fiscal.services.config_service import anexar_certificado, atualizar_config
from tenants.models import Tenant, TenantUsuario

logger = logging.getLogger(__name__)

TENANT_DOCUMENTO = "12345678000199"
EMITENTE_CNPJ = "11222333000181"
CERTIFICADO_SENHA = "senha-teste-a1"
CERTIFICADO_TITULAR = "CLINICA VET TESTE LTDA:11222333000181"


# =============================================================================
# CERTIFICADO A1 DE TESTE
# =============================================================================

def gerar_pfx(
    *,
    senha: str = CERTIFICADO_SENHA,
    titular: str = CERTIFICADO_TITULAR,
    dias_validade: int = 365,
) -> bytes:
    """
    Gera um PKCS#12 autoassinado (chave EC, rápido) para os testes.
    dias_validade negativo gera um certificado já vencido.
    """
    chave = ec.generate_private_key(ec.SECP256R1())
    nome = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, titular)])

    agora = timezone.now()
    inicio = min(agora, agora + timedelta(days=dias_validade)) - timedelta(days=1)

    certificado = (
        x509.CertificateBuilder()
        .subject_name(nome)
        .issuer_name(nome)
        .public_key(chave.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(inicio)
        .not_valid_after(agora + timedelta(days=dias_validade))
        .sign(chave, hashes.SHA256())
    )

    return pkcs12.serialize_key_and_certificates(
        name=b"a1-teste",
        key=chave,
        cert=certificado,
        cas=None,
        encryption_algorithm=BestAvailableEncryption(senha.encode()),
    )


@pytest.fixture(scope="session")
def pfx_bytes():
    return gerar_pfx()


# =============================================================================
# TENANT / USUÁRIO
# =============================================================================

@pytest.fixture
def tenant(db):
    return Tenant.objects.create(
        nome="Clínica Veterinária Teste",
        documento=TENANT_DOCUMENTO,
        recursos=["nfe"],
    )


@pytest.fixture
def outro_tenant(db):
    return Tenant.objects.create(
        nome="Outra Clínica",
        documento="98765432000198",
        recursos=["nfe"],
    )


@pytest.fixture
def user(db):
    User = get_user_model()
    return User.objects.create_user(username="vet-operador", password="123456")


@pytest.fixture
def membership(tenant, user):
    return TenantUsuario.objects.create(
        tenant=tenant,
        user_id=user.id,
        is_admin=False,
        permissoes=["manage_fiscal", "create_invoice"],
    )


@pytest.fixture
def api_client(user, tenant, membership):
    """
    Cliente autenticado no tenant padrão (header X-Tenant-ID).
    """
    client = APIClient()
    client.force_authenticate(user=user)
    client.credentials(HTTP_X_TENANT_ID=str(tenant.id))
    return client


# =============================================================================
# CONFIGURAÇÃO FISCAL
# =============================================================================

@pytest.fixture
def nfe_config(tenant, pfx_bytes):
    """
    Configuração fiscal completa (emitente + certificado A1 válido).
    """
    atualizar_config(
        tenant_id=tenant.id,
        dados={
            "cnpj": EMITENTE_CNPJ,
            "inscricao_estadual": "110042490114",
            "razao_social": "Clinica Vet Teste LTDA",
            "nome_fantasia": "Vet Teste",
            "logradouro": "Rua das Flores",
            "numero": "100",
            "bairro": "Centro",
            "codigo_municipio": "3550308",
            "municipio": "Sao Paulo",
            "uf": "SP",
            "cep": "01001-000",
            "serie_nfe": 1,
        },
    )
    anexar_certificado(tenant_id=tenant.id, conteudo=pfx_bytes, senha=CERTIFICADO_SENHA)
    return NfeConfig.objects.get(tenant=tenant)


# =============================================================================
# FINANCEIRO
# =============================================================================

@pytest.fixture
def cliente(tenant):
    return Cliente.objects.create(
        tenant=tenant,
        nome="Maria Tutora",
        documento="123.456.789-09",
        email="maria@example.com",
        endereco="Av. Paulista, 1000",
        cidade="Sao Paulo",
        uf="SP",
        cep="01310-100",
    )


def criar_fatura(tenant, cliente, *, numero_fatura="FAT-0001", **kwargs) -> Fatura:
    dados = {
        "subtotal": Decimal("250.00"),
        "valor_desconto": Decimal("0.00"),
        "valor_total": Decimal("250.00"),
        "forma_pagamento": FormaPagamento.PIX,
    }
    dados.update(kwargs)
    fatura = Fatura.objects.create(
        tenant=tenant,
        cliente=cliente,
        numero_fatura=numero_fatura,
        **dados,
    )
    FaturaItem.objects.create(
        fatura=fatura,
        ordem=1,
        descricao="Consulta veterinária",
        quantidade=Decimal("1"),
        valor_unitario=Decimal("150.00"),
        valor_total=Decimal("150.00"),
    )
    FaturaItem.objects.create(
        fatura=fatura,
        ordem=2,
        descricao="Vacina V10",
        quantidade=Decimal("2"),
        valor_unitario=Decimal("50.00"),
        valor_total=Decimal("100.00"),
    )
    return fatura


@pytest.fixture
def fatura_factory(tenant, cliente):
    def _factory(**kwargs):
        return criar_fatura(tenant, cliente, **kwargs)
    return _factory


@pytest.fixture
def fatura(fatura_factory):
    return fatura_factory()


@pytest.fixture
def pfx_factory():
    return gerar_pfx


@pytest.fixture
def certificado_senha():
    return CERTIFICADO_SENHA


@pytest.fixture(autouse=True)
def _nfe_test_settings(settings):
    """
    Valores fiscais fixos nos testes, independentes do ambiente da máquina.
    """
    settings.NFE_SIMULADOR_MODO = "autorizar"
    settings.NFE_MAX_TENTATIVAS = 10
    settings.NFE_MOTIVO_MINIMO = 15
    settings.NFE_JANELA_CANCELAMENTO_HORAS = 24
    settings.NFE_PROCESSANDO_EXPIRA_SEGUNDOS = 300
    settings.NFE_SEFAZ_TIMEOUT_SEGUNDOS = 5
    settings.TENANT_PROVISIONING_TOKEN = "token-provisionamento-teste"
    settings.ADMIN_PROVISIONING_TOKEN = ""
