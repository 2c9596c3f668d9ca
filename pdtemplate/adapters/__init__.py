"""
Adapters for the remote organization service.

The deployment services depend only on the CrmServiceAdapter protocol:

    from pdtemplate.adapters import DataverseWebApiAdapter, DryRunCrmServiceAdapter

    crm = DataverseWebApiAdapter("https://contoso.crm.dynamics.com", token)
    crm = DryRunCrmServiceAdapter(crm)  # optional: log writes instead of applying them
"""

from pdtemplate.adapters.base import CrmServiceAdapter
from pdtemplate.adapters.dry_run import DryRunCrmServiceAdapter
from pdtemplate.adapters.memory import InMemoryCrmServiceAdapter
from pdtemplate.adapters.webapi import DataverseWebApiAdapter

__all__ = [
    "CrmServiceAdapter",
    "DryRunCrmServiceAdapter",
    "InMemoryCrmServiceAdapter",
    "DataverseWebApiAdapter",
]
