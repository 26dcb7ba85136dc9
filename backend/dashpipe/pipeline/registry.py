"""
ConnectorRegistry — maps a step's (kind, medium) to the connector that runs it.

The mapping is pure: the step declares its kind and medium, the registry
looks the pair up.  Nothing is inferred from URLs, paths or DSNs.

To override a connector (e.g. inject an HTTP transport in tests)::

    registry = ConnectorRegistry({
        (StepKind.READ, Medium.HTTP): partial(HttpReadConnector, transport=mock),
    })
"""

from __future__ import annotations

from typing import Callable

from dashpipe.core.constants import Medium, StepKind
from dashpipe.core.logging import get_logger
from dashpipe.pipeline.connector import Connector
from dashpipe.pipeline.connectors import (
    DatabaseReadConnector,
    DatabaseWriteConnector,
    FileReadConnector,
    FileWriteConnector,
    HttpReadConnector,
    HttpWriteConnector,
    ProcessRunConnector,
)
from dashpipe.pipeline.errors import ConfigError
from dashpipe.pipeline.step import Step

logger = get_logger(__name__)

ConnectorFactory = Callable[..., Connector]


# ═══════════════════════════════════════════════════════════
#  Connector Registry
# ═══════════════════════════════════════════════════════════

CONNECTOR_REGISTRY: dict[tuple[StepKind, Medium], ConnectorFactory] = {
    (StepKind.READ, Medium.FILE): FileReadConnector,
    (StepKind.READ, Medium.HTTP): HttpReadConnector,
    (StepKind.READ, Medium.DATABASE): DatabaseReadConnector,
    (StepKind.WRITE, Medium.FILE): FileWriteConnector,
    (StepKind.WRITE, Medium.HTTP): HttpWriteConnector,
    (StepKind.WRITE, Medium.DATABASE): DatabaseWriteConnector,
    (StepKind.RUN, Medium.PROCESS): ProcessRunConnector,
}


class ConnectorRegistry:
    """
    Resolves a Step to a ready-to-open Connector instance.

    Entries passed in `overrides` replace the defaults for their pair;
    all other pairs keep the default connector.
    """

    def __init__(
        self,
        overrides: dict[tuple[StepKind, Medium], ConnectorFactory] | None = None,
    ) -> None:
        self.registry = {**CONNECTOR_REGISTRY, **(overrides or {})}

    def resolve(
        self,
        step: Step,
        index: int,
        pipeline_env: dict[str, str] | None = None,
    ) -> Connector:
        """
        Build the connector for `step`.

        Raises:
            ConfigError: If no connector is registered for the pair.
        """
        pair = (step.kind, step.medium)
        factory = self.registry.get(pair)
        if factory is None:
            raise ConfigError(
                f"No connector registered for {step.kind} {step.medium}",
                step_name=step.label(index),
                step_index=index,
            )

        logger.debug(
            "Connector resolved",
            pair=f"{step.kind}.{step.medium}",
            connector=getattr(factory, "__name__", repr(factory)),
        )

        if step.kind == StepKind.RUN:
            return factory(step, index, base_env=pipeline_env or {})
        return factory(step, index)

    def list_available(self) -> list[str]:
        """Return all registered pairs as "kind.medium" strings."""
        return [f"{kind}.{medium}" for kind, medium in self.registry]
