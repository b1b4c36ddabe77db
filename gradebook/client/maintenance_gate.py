"""
Client-side maintenance gate.

Polls the public maintenance status endpoint and decides, for the current
route and actor, whether the application is usable (``open``) or the
maintenance interstitial should be shown (``blocked``). A status check that
cannot complete never blocks anyone: the gate fails open.
"""

import asyncio
import math
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

import httpx

from gradebook.core.exceptions import NetworkError
from gradebook.core.logging_config import get_logger
from gradebook.core.time_windows import as_utc, utc_now
from gradebook.models.maintenance import MaintenanceStatus
from gradebook.models.user import ALWAYS_BYPASS_ROLES

logger = get_logger(__name__)

STATUS_PATH = "/api/v1/system/maintenance/status"
DEFAULT_POLL_INTERVAL = 30.0
DEFAULT_TIMEOUT = 10.0

# Reachable whatever the maintenance state, so people can still sign in or read about an outage
PUBLIC_ROUTES = frozenset({
    "/",
    "/home",
    "/about",
    "/contact",
    "/login",
    "/register",
    "/maintenance",
    "/diagnostics",
    "/forgot-password",
    "/reset-password",
})
PUBLIC_ROUTE_PREFIXES = ("/reset-password/",)


class GateState(str, Enum):
    CHECKING = "checking"
    OPEN = "open"
    BLOCKED = "blocked"


def is_public_route(path: str) -> bool:
    path = path.split("?", 1)[0].split("#", 1)[0]
    if len(path) > 1:
        path = path.rstrip("/")
    return path in PUBLIC_ROUTES or path.startswith(PUBLIC_ROUTE_PREFIXES)


def decide(status: Optional[MaintenanceStatus], route: str, role: Optional[str]) -> GateState:
    """
    Decide what to render for ``route``.

    Args:
        status: Last fetched status, or None when the fetch failed
        route: Path being rendered
        role: Role of the signed-in actor, None when anonymous

    Returns:
        GateState.OPEN or GateState.BLOCKED
    """
    if status is None or not status.is_maintenance_mode:
        return GateState.OPEN
    if is_public_route(route):
        return GateState.OPEN
    if role is None:
        return GateState.BLOCKED
    if role in ALWAYS_BYPASS_ROLES or role in status.allowed_bypass_roles or status.can_bypass:
        return GateState.OPEN
    return GateState.BLOCKED


def format_estimated_completion(value: Optional[datetime], now: Optional[datetime] = None) -> Optional[str]:
    """Human-friendly time until maintenance is expected to end"""
    if value is None:
        return None
    now = as_utc(now or utc_now())
    remaining = as_utc(value) - now
    if remaining.total_seconds() <= 0:
        return "Soon"

    if remaining < timedelta(hours=1):
        return "Within the hour"

    hours = math.ceil(remaining.total_seconds() / 3600)
    if hours == 1:
        return "In about 1 hour"
    if hours < 24:
        return f"In about {hours} hours"

    days = math.ceil(hours / 24)
    if days == 1:
        return "Tomorrow"
    return f"In {days} days"


class MaintenanceGate:
    """Maintenance gate for one client session.

    Mount it with ``start()`` (or ``async with``) to poll every
    ``poll_interval`` seconds; ``stop()`` cancels the poll task. Route changes
    go through ``navigate()``, which re-checks immediately.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        role: Optional[str] = None,
        token: Optional[str] = None,
        route: str = "/",
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        timeout: float = DEFAULT_TIMEOUT,
        status_path: str = STATUS_PATH,
    ):
        if client is None and base_url is None:
            raise ValueError("Either base_url or client is required")
        self.base_url = base_url
        self.transport = transport
        self._owns_client = client is None
        self._client = client
        self.timeout = timeout
        self.status_path = status_path
        self.poll_interval = poll_interval
        self.role = role
        self.token = token
        self.route = route

        self.state = GateState.CHECKING
        self.status: Optional[MaintenanceStatus] = None
        self._last_decision: Optional[GateState] = None
        self._generation = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def display_state(self) -> GateState:
        """What to render now: the last decision while a re-check is outstanding"""
        if self.state is GateState.CHECKING and self._last_decision is not None:
            return self._last_decision
        return self.state

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def _always_bypasses(self) -> bool:
        return self.role in ALWAYS_BYPASS_ROLES

    def _set_decision(self, state: GateState) -> GateState:
        self.state = state
        self._last_decision = state
        return state

    def _http_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url, timeout=self.timeout, transport=self.transport
            )
        return self._client

    async def fetch_status(self) -> MaintenanceStatus:
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else None
        try:
            response = await self._http_client().get(self.status_path, headers=headers, timeout=self.timeout)
            response.raise_for_status()
            return MaintenanceStatus.model_validate(response.json())
        except (httpx.HTTPError, ValueError) as e:
            raise NetworkError(
                f"Maintenance status check failed: {type(e).__name__}: {e}",
                error_code="STATUS_FETCH_FAILED"
            ) from e

    async def check(self) -> GateState:
        """Run one status check and apply the decision.

        A check started later supersedes one still in flight; the older
        result is discarded when it arrives.
        """
        self._generation += 1
        generation = self._generation

        if self._always_bypasses():
            return self._set_decision(GateState.OPEN)

        self.state = GateState.CHECKING
        try:
            status = await self.fetch_status()
        except NetworkError as e:
            logger.warning(f"{e.message}; failing open")
            status = None
        except Exception as e:
            logger.error(f"Unexpected maintenance status failure: {type(e).__name__}: {e}; failing open")
            status = None

        if generation != self._generation:
            logger.debug("Discarding superseded maintenance status result")
            return self.display_state

        if status is not None:
            self.status = status
        decision = decide(status, self.route, self.role)
        if decision is GateState.BLOCKED and self._last_decision is not GateState.BLOCKED:
            logger.info(f"Maintenance mode active, blocking route {self.route}")
        elif decision is GateState.OPEN and self._last_decision is GateState.BLOCKED:
            logger.info("Maintenance ended, reopening application")
        return self._set_decision(decision)

    async def navigate(self, route: str) -> GateState:
        self.route = route
        return await self.check()

    async def _poll_loop(self) -> None:
        while True:
            await self.check()
            await asyncio.sleep(self.poll_interval)

    async def _cancel_polling(self) -> None:
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.error(f"Maintenance poll task ended with {type(e).__name__}: {e}")
        # Late results from a cancelled check must not land
        self._generation += 1

    def start(self) -> None:
        """Start polling on the running event loop (idempotent)"""
        if self.is_running:
            return
        if self._always_bypasses():
            self._set_decision(GateState.OPEN)
        self._task = asyncio.create_task(self._poll_loop())

    async def stop(self) -> None:
        """Cancel polling and release the HTTP client if the gate created it.

        The gate can be started again afterwards; an owned client is
        recreated on the next check.
        """
        await self._cancel_polling()
        if self._owns_client and self._client is not None:
            client, self._client = self._client, None
            await client.aclose()

    def login(self, role: str, token: Optional[str] = None) -> None:
        self.role = role
        self.token = token
        if self._always_bypasses():
            self._set_decision(GateState.OPEN)

    async def logout(self) -> None:
        """Forget the actor and stop polling for this session"""
        self.role = None
        self.token = None
        await self._cancel_polling()

    async def __aenter__(self) -> "MaintenanceGate":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()
