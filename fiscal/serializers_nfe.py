# fiscal/serializers_nfe.py
from rest_framework import serializers

from fiscal.models import NfeStatus


class TransmitirNfeInputSerializer(serializers.Serializer):
    timeout = serializers.FloatField(required=False, min_value=1, max_value=120)


class CancelarNfeInputSerializer(serializers.Serializer):
    """
    Dados de entrada para cancelamento de NF-e.

    O tamanho mínimo do motivo é validado pela service (depois da checagem
    de status), para que a ordem dos erros seja a mesma em qualquer canal.
    """

    motivo = serializers.CharField(
        required=True,
        allow_blank=True,
        help_text="Motivo descritivo do cancelamento (mínimo 15 caracteres). Requerido pela SEFAZ.",
    )
    timeout = serializers.FloatField(required=False, min_value=1, max_value=120)


class ListarNfeQuerySerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=NfeStatus.choices, required=False)
    limite = serializers.IntegerField(required=False, min_value=1, max_value=500)


class GerarNfeOutputSerializer(serializers.Serializer):
    """
    Espelha o DTO GerarNfeResult.
    """

    documento_id = serializers.CharField()
    fatura_id = serializers.CharField()
    numero = serializers.IntegerField()
    serie = serializers.IntegerField()
    chave_acesso = serializers.CharField()
    status = serializers.CharField()
    ambiente = serializers.CharField()


class TransmitirNfeOutputSerializer(serializers.Serializer):
    documento_id = serializers.CharField()
    fatura_id = serializers.CharField()
    numero = serializers.IntegerField()
    serie = serializers.IntegerField()
    chave_acesso = serializers.CharField()
    status = serializers.CharField()
    protocolo = serializers.CharField(allow_null=True)
    codigo_status = serializers.CharField(allow_null=True)
    motivo_status = serializers.CharField(allow_null=True)
    data_autorizacao = serializers.CharField(allow_null=True)
    tentativas = serializers.IntegerField()


class CancelarNfeOutputSerializer(serializers.Serializer):
    documento_id = serializers.CharField()
    fatura_id = serializers.CharField()
    numero = serializers.IntegerField()
    serie = serializers.IntegerField()
    chave_acesso = serializers.CharField()
    protocolo_cancelamento = serializers.CharField()
    status = serializers.CharField()
    mensagem = serializers.CharField()
    data_cancelamento = serializers.CharField()


class NfeStatusOutputSerializer(serializers.Serializer):
    documento_id = serializers.CharField()
    fatura_id = serializers.CharField()
    numero = serializers.IntegerField()
    serie = serializers.IntegerField()
    chave_acesso = serializers.CharField()
    status = serializers.CharField()
    tentativas = serializers.IntegerField()
    ultima_tentativa = serializers.CharField(allow_null=True)
    codigo_status = serializers.CharField(allow_null=True)
    motivo_status = serializers.CharField(allow_null=True)
    protocolo = serializers.CharField(allow_null=True)
    data_autorizacao = serializers.CharField(allow_null=True)
    cancelada = serializers.BooleanField()
    motivo_cancelamento = serializers.CharField(allow_null=True)
    protocolo_cancelamento = serializers.CharField(allow_null=True)
    data_cancelamento = serializers.CharField(allow_null=True)
    ambiente = serializers.CharField()
    created_at = serializers.CharField()
