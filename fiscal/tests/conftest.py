# conftest.py
import pytest
from django.db import close_old_connections


@pytest.fixture(autouse=True, scope="function")
def _force_test_tuning(request, settings):
    """
    Sem conexões persistentes nos testes do app fiscal (o teste de
    numeração concorrente abre conexões em threads). Testes sem
    django_db não tocam nas conexões.
    """
    settings.DATABASES["default"]["CONN_MAX_AGE"] = 0

    if request.node.get_closest_marker("django_db") is None:
        yield
        return

    close_old_connections()
    yield
    close_old_connections()
