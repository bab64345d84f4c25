# fiscal/urls.py

from django.urls import path

from fiscal.views.nfe_config_views import nfe_certificado_view, nfe_config_view
from fiscal.views.nfe_views import (
    cancelar_nfe_view,
    documentos_fatura_view,
    documentos_view,
    gerar_nfe_view,
    status_nfe_view,
    transmitir_nfe_view,
    xml_nfe_view,
)

app_name = "fiscal"

urlpatterns = [
    # configuração fiscal / certificado A1
    path("nfe/config/", nfe_config_view, name="nfe_config"),
    path("nfe/certificado/", nfe_certificado_view, name="nfe_certificado"),

    # ciclo de vida da NF-e
    path("nfe/gerar/<uuid:fatura_id>/", gerar_nfe_view, name="nfe_gerar"),
    path("nfe/transmitir/<uuid:documento_id>/", transmitir_nfe_view, name="nfe_transmitir"),
    path("nfe/cancelar/<uuid:documento_id>/", cancelar_nfe_view, name="nfe_cancelar"),

    # consultas
    path("nfe/status/<uuid:documento_id>/", status_nfe_view, name="nfe_status"),
    path("nfe/fatura/<uuid:fatura_id>/", documentos_fatura_view, name="nfe_fatura"),
    path("nfe/documentos/", documentos_view, name="nfe_documentos"),
    path("nfe/xml/<uuid:documento_id>/", xml_nfe_view, name="nfe_xml"),
]
