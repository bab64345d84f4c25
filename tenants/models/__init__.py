from .tenants_models import Tenant, TenantUsuario

__all__ = ["Tenant", "TenantUsuario"]
