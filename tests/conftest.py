import logging
import uuid

import pytest

from pdtemplate import constants
from pdtemplate.adapters import InMemoryCrmServiceAdapter


class RecordingHandler(logging.Handler):
    """Keeps every record emitted to the logger it is attached to."""

    def __init__(self):
        super().__init__(level=logging.DEBUG)
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)

    def messages(self, level: int | None = None) -> list[str]:
        return [r.getMessage() for r in self.records if level is None or r.levelno == level]

    @property
    def errors(self) -> list[str]:
        return self.messages(logging.ERROR)

    @property
    def warnings(self) -> list[str]:
        return self.messages(logging.WARNING)

    @property
    def infos(self) -> list[str]:
        return self.messages(logging.INFO)


@pytest.fixture
def log_sink() -> RecordingHandler:
    return RecordingHandler()


@pytest.fixture
def logger(log_sink) -> logging.Logger:
    """Isolated logger that writes only to log_sink."""
    test_logger = logging.getLogger(f"pdtemplate.tests.{uuid.uuid4().hex}")
    test_logger.setLevel(logging.DEBUG)
    test_logger.propagate = False
    test_logger.addHandler(log_sink)
    return test_logger


@pytest.fixture
def crm() -> InMemoryCrmServiceAdapter:
    return InMemoryCrmServiceAdapter(
        caller="deployer@contoso.com",
        users=["connections.owner@contoso.com"],
    )


@pytest.fixture
def add_workflow(crm):
    """Factory: store a workflow named `name` in the crm fixture."""
    def _add(name: str, workflow_type: int = 1, state: int = 0):
        return crm.add(
            constants.Workflow.LOGICAL_NAME,
            {"name": name, "type": workflow_type, "statecode": state},
        )
    return _add


@pytest.fixture
def add_connection_reference(crm):
    """Factory: store a connection reference, optionally pointing at a custom connector."""
    def _add(
        logical_name: str,
        connector_id: str = "/providers/Microsoft.PowerApps/apis/shared_office365",
        custom_connector=None,
    ):
        attributes = {
            "connectionreferencelogicalname": logical_name,
            "connectorid": connector_id,
            "connectionid": None,
        }
        if custom_connector is not None:
            attributes["customconnectorid"] = custom_connector.to_reference()
        return crm.add(constants.ConnectionReference.LOGICAL_NAME, attributes)
    return _add
