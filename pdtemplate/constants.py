"""Logical names of the Dataverse entities and attributes used by the deployment steps."""


class ConnectionReference:
    LOGICAL_NAME = "connectionreference"

    class Fields:
        CONNECTION_REFERENCE_ID = "connectionreferenceid"
        CONNECTION_REFERENCE_LOGICAL_NAME = "connectionreferencelogicalname"
        CONNECTION_ID = "connectionid"
        CONNECTOR_ID = "connectorid"
        CUSTOM_CONNECTOR_ID = "customconnectorid"


class Connector:
    LOGICAL_NAME = "connector"

    class Fields:
        CONNECTOR_INTERNAL_ID = "connectorinternalid"


class Workflow:
    LOGICAL_NAME = "workflow"

    class Fields:
        NAME = "name"
        TYPE = "type"

    # workflow.type option set: 1 = Definition, 2 = Activation, 3 = Template
    TYPE_DEFINITION = 1


class SdkMessageProcessingStep:
    LOGICAL_NAME = "sdkmessageprocessingstep"

    class Fields:
        NAME = "name"


class Sla:
    LOGICAL_NAME = "sla"

    class Fields:
        NAME = "name"
        IS_DEFAULT = "isdefault"


class SystemUser:
    LOGICAL_NAME = "systemuser"

    class Fields:
        DOMAIN_NAME = "domainname"
        AAD_OBJECT_ID = "azureactivedirectoryobjectid"


# Canonical connector id for a custom connector, keyed by its internal id
CUSTOM_CONNECTOR_ID_FORMAT = "/providers/Microsoft.PowerApps/apis/{internal_id}"
