"""
Request-time access gate.

Runs before every page request. It resolves the caller's session, keeps
signed-out callers out of the dashboard, and sends signed-in callers who hit
the landing page to the home page of their role. Infrastructure failures
never block a page: the gate logs them and lets the request through.
"""
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Mapping, Optional

from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import RedirectResponse

from app.config import routes_config
from app.core.identity import CookieJar, CookieMutation, IdentityProvider, SessionResolution
from app.modules.users.schemas import Role
from app.modules.users.service import UserService

logger = logging.getLogger(__name__)


@dataclass
class GateDecision:
    redirect_to: Optional[str] = None
    cookies: List[CookieMutation] = field(default_factory=list)
    resolution: Optional[SessionResolution] = None

    @property
    def proceed(self) -> bool:
        return self.redirect_to is None


def home_path_for(role: Role) -> str:
    return routes_config.ROLE_HOME_PATHS.get(role.value, routes_config.DEFAULT_HOME_PATH)


class AccessGate:
    def __init__(
        self,
        identity: IdentityProvider,
        users: UserService,
        cookie_jar_factory: Callable[[], CookieJar] = CookieJar,
    ):
        self.identity = identity
        self.users = users
        self.cookie_jar_factory = cookie_jar_factory

    async def decide(self, path: str, cookies: Mapping[str, str]) -> GateDecision:
        jar = self.cookie_jar_factory()
        try:
            resolution = await run_in_threadpool(
                self.identity.resolve_session,
                cookies.get(jar.access_cookie_name),
                cookies.get(jar.refresh_cookie_name),
                jar,
            )
        except Exception:
            logger.exception(f"Session resolution failed for {path}; serving page anyway")
            return GateDecision(cookies=jar.mutations)

        if path.startswith(routes_config.PROTECTED_PREFIX) and not resolution.authenticated:
            return GateDecision(redirect_to=routes_config.LANDING_PATH, cookies=jar.mutations, resolution=resolution)

        if path == routes_config.LANDING_PATH and resolution.authenticated:
            target = await run_in_threadpool(self._home_for, resolution.user.id)
            return GateDecision(redirect_to=target, cookies=jar.mutations, resolution=resolution)

        return GateDecision(cookies=jar.mutations, resolution=resolution)

    def _home_for(self, user_id: str) -> str:
        try:
            role = self.users.get_role(user_id)
        except Exception as e:
            logger.warning(f"Role lookup failed for {user_id}, using default home: {e}")
            return routes_config.DEFAULT_HOME_PATH
        return home_path_for(role)


class AccessGateMiddleware:
    """ASGI wrapper around AccessGate; backends are read from the app state at request time"""

    def __init__(self, app, cookie_jar_factory: Callable[[], CookieJar] = CookieJar):
        self.app = app
        self.cookie_jar_factory = cookie_jar_factory

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http" or routes_config.is_gate_excluded(scope["path"]):
            await self.app(scope, receive, send)
            return

        request = Request(scope)
        state = request.app.state
        gate = AccessGate(state.identity, UserService(state.store), self.cookie_jar_factory)
        decision = await gate.decide(request.url.path, request.cookies)

        jar = self.cookie_jar_factory()
        jar.mutations.extend(decision.cookies)

        if decision.redirect_to is not None:
            target = str(request.url.replace(path=decision.redirect_to, query=""))
            response = RedirectResponse(target, status_code=307)
            jar.apply(response)
            await response(scope, receive, send)
            return

        if decision.resolution is not None:
            scope.setdefault("state", {})["session_resolution"] = decision.resolution

        cookie_headers = jar.header_items()

        async def send_with_cookies(message):
            if message["type"] == "http.response.start" and cookie_headers:
                message.setdefault("headers", [])
                message["headers"] = list(message["headers"]) + cookie_headers
            await send(message)

        await self.app(scope, receive, send_with_cookies)
