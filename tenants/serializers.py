# tenants/serializers.py
from rest_framework import serializers

RECURSOS_DISPONIVEIS = ("nfe",)
PERMISSOES_DISPONIVEIS = ("manage_fiscal", "create_invoice")


class AdminCreateSerializer(serializers.Serializer):
    """
    Usuário administrador inicial da clínica.
    """
    username = serializers.CharField(max_length=150)
    email = serializers.EmailField(required=False, allow_blank=True)


class TenantCreateSerializer(serializers.Serializer):
    nome = serializers.CharField(max_length=150)
    documento = serializers.CharField(max_length=18)  # aceita máscara
    recursos = serializers.ListField(
        child=serializers.ChoiceField(choices=RECURSOS_DISPONIVEIS),
        required=False,
        default=list(RECURSOS_DISPONIVEIS),
    )
    admin = AdminCreateSerializer()

    def validate_documento(self, value):
        digitos = "".join(ch for ch in value if ch.isdigit())
        if len(digitos) not in (11, 14):
            raise serializers.ValidationError("Documento deve ser um CPF (11) ou CNPJ (14) válido.")
        return digitos
