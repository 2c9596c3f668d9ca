"""
pdtemplate - Package Deployer template steps for Dataverse

Resolves configured components by name and applies batched, continue-on-error
updates: process and SDK step activation, connection reference wiring and
SLA management.
"""

__version__ = "0.1.0"
__author__ = "Power Platform Deployment Team"


__all__ = ["TemplateConfig", "RuntimeSettings", "load_config", "get_pdt_home", "PackageTemplate"]

from .config import TemplateConfig, RuntimeSettings, load_config, get_pdt_home
from .deployer import PackageTemplate
