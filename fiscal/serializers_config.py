# fiscal/serializers_config.py
from rest_framework import serializers

from fiscal.models import NfeAmbiente, RegimeTributario

TAMANHO_MAXIMO_CERTIFICADO = 5 * 1024 * 1024  # 5 MB
EXTENSOES_CERTIFICADO = (".pfx", ".p12")
CONTENT_TYPES_CERTIFICADO = ("application/x-pkcs12", "application/pkcs12")
SENHA_MASCARADA = "********"


class NfeConfigInputSerializer(serializers.Serializer):
    """
    Atualização parcial da configuração fiscal.
    Campos omitidos não são alterados.
    """

    ambiente = serializers.ChoiceField(choices=NfeAmbiente.choices, required=False)
    cnpj = serializers.CharField(max_length=18, required=False, allow_blank=True)
    inscricao_estadual = serializers.CharField(max_length=20, required=False, allow_blank=True)
    inscricao_municipal = serializers.CharField(max_length=20, required=False, allow_blank=True)
    razao_social = serializers.CharField(max_length=120, required=False, allow_blank=True)
    nome_fantasia = serializers.CharField(max_length=120, required=False, allow_blank=True)
    logradouro = serializers.CharField(max_length=120, required=False, allow_blank=True)
    numero = serializers.CharField(max_length=20, required=False, allow_blank=True)
    bairro = serializers.CharField(max_length=60, required=False, allow_blank=True)
    codigo_municipio = serializers.CharField(max_length=7, required=False, allow_blank=True)
    municipio = serializers.CharField(max_length=60, required=False, allow_blank=True)
    uf = serializers.CharField(max_length=2, required=False, allow_blank=True)
    cep = serializers.CharField(max_length=9, required=False, allow_blank=True)
    serie_nfe = serializers.IntegerField(min_value=0, max_value=999, required=False)
    serie_nfse = serializers.IntegerField(min_value=0, max_value=999, required=False)
    regime_tributario = serializers.ChoiceField(choices=RegimeTributario.choices, required=False)
    codigo_cnae = serializers.CharField(max_length=10, required=False, allow_blank=True)
    item_lista_servico = serializers.CharField(max_length=10, required=False, allow_blank=True)
    aliquota_iss = serializers.DecimalField(
        max_digits=5, decimal_places=2, min_value=0, max_value=100, required=False, allow_null=True
    )
    natureza_operacao = serializers.CharField(max_length=60, required=False)


class NfeConfigOutputSerializer(serializers.Serializer):
    """
    Configuração fiscal exposta na API.

    O certificado nunca sai: só a indicação de que está configurado,
    a validade, o titular e a senha mascarada.
    """

    id = serializers.CharField()
    tenant_id = serializers.CharField()
    ambiente = serializers.CharField()
    cnpj = serializers.CharField()
    inscricao_estadual = serializers.CharField()
    inscricao_municipal = serializers.CharField()
    razao_social = serializers.CharField()
    nome_fantasia = serializers.CharField()
    logradouro = serializers.CharField()
    numero = serializers.CharField()
    bairro = serializers.CharField()
    codigo_municipio = serializers.CharField()
    municipio = serializers.CharField()
    uf = serializers.CharField()
    cep = serializers.CharField()
    serie_nfe = serializers.IntegerField()
    serie_nfse = serializers.IntegerField()
    regime_tributario = serializers.CharField()
    codigo_cnae = serializers.CharField()
    item_lista_servico = serializers.CharField()
    aliquota_iss = serializers.DecimalField(max_digits=5, decimal_places=2, allow_null=True)
    natureza_operacao = serializers.CharField()
    ultimo_numero_nfe = serializers.IntegerField()

    certificado_configurado = serializers.BooleanField()
    certificado_validade = serializers.DateTimeField(allow_null=True)
    certificado_titular = serializers.CharField(allow_blank=True)
    certificado_senha = serializers.SerializerMethodField()

    def get_certificado_senha(self, obj):
        return SENHA_MASCARADA if obj.certificado_senha else None


class CertificadoUploadSerializer(serializers.Serializer):
    """
    Upload do certificado A1 (.pfx/.p12, até 5 MB) com a senha.
    """

    certificado = serializers.FileField()
    senha = serializers.CharField(trim_whitespace=False)

    def validate_certificado(self, arquivo):
        if arquivo.size > TAMANHO_MAXIMO_CERTIFICADO:
            raise serializers.ValidationError("Certificado excede o tamanho máximo de 5 MB.")

        nome = (arquivo.name or "").lower()
        content_type = getattr(arquivo, "content_type", "") or ""
        if not nome.endswith(EXTENSOES_CERTIFICADO) and content_type not in CONTENT_TYPES_CERTIFICADO:
            raise serializers.ValidationError("Envie um arquivo .pfx ou .p12.")

        return arquivo


class CertificadoOutputSerializer(serializers.Serializer):
    validade = serializers.DateTimeField()
    titular = serializers.CharField(allow_blank=True)
