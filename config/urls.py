# config/urls.py
from django.urls import path, include
from drf_spectacular.views import SpectacularAPIView

urlpatterns = [
    path("api/v1/commons/", include("commons.urls")),
    path(
        "api/v1/tenants/",
        include(("tenants.urls", "tenants"), namespace="tenants"),
    ),
    path("api/v1/fiscal/", include(("fiscal.urls", "fiscal"), namespace="fiscal")),

    path("api/schema/", SpectacularAPIView.as_view(), name="schema"),
]
