"""Health check tool reporting per-handler request metrics."""

import time
from typing import Any, Callable, Dict, List, Optional

from abap_adt_mcp.adt.session import SessionClient
from abap_adt_mcp.handlers.base import BaseHandler, Operation
from abap_adt_mcp.handlers.metrics import DEFAULT_RATE_LIMIT, RequestMetrics
from abap_adt_mcp.results import ToolDefinition

MetricsProvider = Callable[[], Dict[str, RequestMetrics]]


class HealthHandlers(BaseHandler):
    """
    Report process health.

    The tool makes no remote call; it aggregates the metrics of every handler
    known to ``metrics_provider`` (normally the tool registry).
    """

    namespace = "health"

    def __init__(
        self,
        client: SessionClient,
        rate_limit: str = DEFAULT_RATE_LIMIT,
        rate_limit_enabled: bool = True,
        metrics_provider: Optional[MetricsProvider] = None,
    ):
        super().__init__(client, rate_limit, rate_limit_enabled)
        self.metrics_provider = metrics_provider
        self.started_at = time.time()

    def get_tools(self) -> List[ToolDefinition]:
        return [
            ToolDefinition(
                name="healthcheck",
                description="Check server health and per-handler request statistics",
                input_schema={"type": "object", "properties": {}},
            ),
        ]

    def operations(self) -> Dict[str, Operation]:
        return {"healthcheck": Operation("check health", self._healthcheck)}

    async def _healthcheck(self, args: Dict[str, Any]) -> Dict[str, Any]:
        handlers = self.metrics_provider() if self.metrics_provider else {self.name: self.get_metrics()}
        return {
            "healthy": True,
            "stateful": self.client.is_stateful,
            "uptimeSeconds": round(time.time() - self.started_at, 3),
            "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
            "handlers": {name: metrics.to_dict() for name, metrics in handlers.items()},
        }
