"""
FlashScope: decides when a request's flash map is flagged, swept and saved.

Handlers can be nested for the same request (stacked middleware, an internal
forward back into the app). The first invocation claims the request by putting
a RequestLock into the request attributes; only that outermost invocation
applies the sweep-unused policy and sweeps at the end. Flags set by inner
invocations land in the same map and are honored by that one sweep.
"""
import logging
from collections.abc import Callable, Iterator, MutableMapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

from flash_web.config import SWEEP_UNUSED_FLASH_ENTRIES
from flash_web.flash_map import FlashMap
from flash_web.keys import KeyAdapter
from flash_web.session import Session, SessionInvalidatedError

logger = logging.getLogger(__name__)

# Session attribute owning the map across requests
SESSION_KEY = "flash_web.flash_map"
# Request attributes (underscored so they read as request.state.<name>)
FLASH_ATTR = "flash_map"
LOCK_ATTR = "flash_lock"


class RequestLock:
    """Marks a request as claimed by an outer FlashScope. Lives in request attributes only."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "RequestLock()"


@dataclass
class RequestContext:
    """
    Explicit per-request context. attributes is shared by every nested invocation
    for the same request and by nothing else; session is shared by all requests
    of the user and may be None when there is no active session.
    """

    attributes: MutableMapping[str, Any] = field(default_factory=dict)
    session: Session | None = None

    @property
    def claimed(self) -> bool:
        return isinstance(self.attributes.get(LOCK_ATTR), RequestLock)


SweepPolicy = bool | Callable[[RequestContext], bool]


class FlashScope:
    def __init__(
        self,
        sweep_unused: SweepPolicy = SWEEP_UNUSED_FLASH_ENTRIES,
        key_adapter: KeyAdapter | None = None,
    ):
        self.sweep_unused = sweep_unused
        self.key_adapter = key_adapter or KeyAdapter()

    def sweep_unused_entries(self, ctx: RequestContext) -> bool:
        """Whether entries not read this request should be dropped at its end. Default False."""
        if callable(self.sweep_unused):
            return bool(self.sweep_unused(ctx))
        return bool(self.sweep_unused)

    def flash(self, ctx: RequestContext) -> FlashMap:
        """Return the FlashMap for this request, loading it from the session or creating it."""
        cached = ctx.attributes.get(FLASH_ATTR)
        if isinstance(cached, FlashMap):
            return cached
        f = None
        if ctx.session is not None:
            try:
                f = ctx.session.setdefault(SESSION_KEY, lambda: FlashMap(key_adapter=self.key_adapter))
            except SessionInvalidatedError:
                f = None
        if not isinstance(f, FlashMap):
            f = FlashMap(key_adapter=self.key_adapter)
        ctx.attributes[FLASH_ATTR] = f
        return f

    @contextmanager
    def enter(self, ctx: RequestContext) -> Iterator[FlashMap]:
        """
        Wrap one invocation of the handler chain. Exceptions from the body pass
        through unchanged; the outermost invocation sweeps and the map is saved
        either way.
        """
        f = self.flash(ctx)
        is_outermost = not ctx.claimed
        if is_outermost:
            ctx.attributes[LOCK_ATTR] = RequestLock()
            if self.sweep_unused_entries(ctx):
                f.flag_all()
        try:
            yield f
        finally:
            if is_outermost:
                f.sweep()
            self.save(ctx, f)

    def handle(self, ctx: RequestContext, handler: Callable[[RequestContext], Any]) -> Any:
        """Run handler(ctx) inside this scope and return its result."""
        with self.enter(ctx):
            return handler(ctx)

    def save(self, ctx: RequestContext, f: FlashMap) -> None:
        """Store the map in the session. A session can go away mid-request; that loses the flash, nothing else."""
        if ctx.session is None:
            logger.debug("No session; flash map not persisted")
            return
        try:
            ctx.session[SESSION_KEY] = f
        except Exception as e:
            logger.debug("Flash map not persisted: %r", e)
