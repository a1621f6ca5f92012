# Wizard Pages Package
"""
Resource-creation wizard definitions, keyed by wizard id.
"""

from typing import Dict, List

from ..definition import WizardDefinition
from ..errors import UnknownWizardError
from . import bucket, eks_cluster, identity_provider, launch_instance, route_table, security_group, vpc

WIZARDS: Dict[str, WizardDefinition] = {
    module.DEFINITION.id: module.DEFINITION
    for module in (
        launch_instance,
        vpc,
        bucket,
        security_group,
        route_table,
        identity_provider,
        eks_cluster,
    )
}

# Resource id prefixes used by the simulated create operation
RESOURCE_PREFIXES = {
    "launch-instance": "i",
    "create-vpc": "vpc",
    "create-bucket": "bucket",
    "create-security-group": "sg",
    "create-route-table": "rtb",
    "add-identity-provider": "idp",
    "create-eks-cluster": "eks",
}


def get_definition(wizard_id: str) -> WizardDefinition:
    try:
        return WIZARDS[wizard_id]
    except KeyError:
        raise UnknownWizardError(wizard_id) from None


def list_wizards() -> List[WizardDefinition]:
    return list(WIZARDS.values())


__all__ = ["WIZARDS", "RESOURCE_PREFIXES", "get_definition", "list_wizards"]
