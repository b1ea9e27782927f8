from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Any, Optional

from ..errors import NoOptimizerError, UnsupportedBackendError, UnsupportedProblemError
from ..model.expressions import VariableRef
from ..model.model import ConstraintRef, Model
from ..model.types import ResultStatus, TerminationStatus
from .backend import Backend, BackendFactory, ConstraintIndex, VariableIndex
from .cache import BackendRepresentation, translate
from .functions import NonlinearFunction
from .resolver import ReferenceResolver
from .results import ResultCache, collect_results

log = logging.getLogger(__name__)

NONLINEAR_UNSUPPORTED = (
    "The solver does not support nonlinear problems (i.e., nonlinear objective or constraints)."
)


class BridgeState(str, Enum):
    EMPTY = "EMPTY"
    ATTACHED_CLEAN = "ATTACHED_CLEAN"
    ATTACHED_STALE = "ATTACHED_STALE"
    SOLVED = "SOLVED"


class OptimizerBridge:
    """Owns the link between a `Model` and one backend instance.

    The state is derived, not stored: EMPTY without a backend, ATTACHED_STALE
    once the model revision moved past the one the backend was built from,
    SOLVED when the last solve ran on the current revision, ATTACHED_CLEAN
    otherwise. Resynchronisation is always a full rebuild.
    """

    def __init__(self, model: Model, factory: Optional[BackendFactory] = None):
        self.model = model
        self._factory = factory
        self._backend: Optional[Backend] = None
        # Backend handed in by reset_optimizer(); resync empties and reuses it
        self._adopted = False
        self._objective_loaded = False
        self._solved_revision: Optional[int] = None
        self.resolver = ReferenceResolver(model)
        self.results = ResultCache(model)

    # --- state ---

    @property
    def state(self) -> BridgeState:
        if self._backend is None:
            return BridgeState.EMPTY
        if not self.resolver.is_synced():
            return BridgeState.ATTACHED_STALE
        if self._solved_revision == self.model.revision:
            return BridgeState.SOLVED
        return BridgeState.ATTACHED_CLEAN

    @property
    def backend(self) -> Backend:
        if self._backend is None:
            raise NoOptimizerError("no backend is attached")
        return self._backend

    # --- lifecycle ---

    def set_optimizer(self, factory: BackendFactory) -> None:
        """Store a backend factory; the backend is built lazily on attach/solve."""
        self.detach()
        self._factory = factory

    def detach(self) -> None:
        if self._backend is not None:
            log.info("detaching backend %s", self._backend.name)
        self._backend = None
        self._adopted = False
        self._objective_loaded = False
        self._solved_revision = None
        self.resolver.reset()
        self.results = ResultCache(self.model)

    def attach(self, factory: Optional[BackendFactory] = None) -> Backend:
        factory = factory or self._factory
        if factory is None:
            raise NoOptimizerError("no backend factory; call set_optimizer() or pass a factory to attach()")
        rep = translate(self.model)
        backend = factory()
        self._check_backend(backend, rep)
        # a rejected factory must not replace the one the bridge rebuilds from
        self._factory = factory
        self._adopted = False
        self._load(backend, rep)
        return backend

    def reset_optimizer(self, backend: Backend) -> None:
        """Attach to an already-constructed backend instance (emptied first)."""
        rep = translate(self.model)
        self._check_backend(backend, rep)
        if not backend.is_empty():
            backend.empty()
        self._adopted = True
        self._load(backend, rep)

    def ensure_synced(self) -> None:
        state = self.state
        if state is BridgeState.EMPTY:
            self.attach()
            return
        if state is not BridgeState.ATTACHED_STALE:
            return
        log.info("model changed since last attach (revision %s -> %s); rebuilding backend",
                 self.resolver.synced_revision, self.model.revision)
        if self._adopted:
            self.reset_optimizer(self.backend)
        else:
            self.attach()

    def _check_backend(self, backend: Backend, rep: BackendRepresentation) -> None:
        seen: set[tuple[type, type]] = set()
        for entry in rep.constraints:
            key = (type(entry.function), type(entry.set))
            if key in seen:
                continue
            seen.add(key)
            if not backend.supports_constraint(*key):
                raise UnsupportedBackendError(
                    f"backend {backend.name} does not support constraints of type "
                    f"{key[0].__name__}-in-{key[1].__name__}"
                )

    def _load(self, backend: Backend, rep: BackendRepresentation) -> None:
        t0 = time.time()
        self.resolver.reset()
        handles: list[int] = []
        for ref, name in zip(self.model.variables(), rep.variable_names):
            vi = backend.add_variable(name)
            self.resolver.record_variable(ref, vi)
            handles.append(vi.value)

        def remap(pos: int) -> int:
            return handles[pos]

        for ref, entry in zip(self.model.constraints(), rep.constraints):
            ci = backend.add_constraint(entry.function.map_variables(remap), entry.set, entry.name)
            self.resolver.record_constraint(ref, ci)

        obj = rep.objective
        if isinstance(obj, NonlinearFunction):
            self._objective_loaded = backend.supports_nonlinear
        else:
            self._objective_loaded = backend.supports_objective(type(obj))
        if self._objective_loaded:
            backend.set_objective(rep.objective_sense, obj.map_variables(remap))
        else:
            log.debug("backend %s cannot take objective %s; deferring the error to solve()",
                      backend.name, type(obj).__name__)

        self._backend = backend
        self._solved_revision = None
        self.results = ResultCache(self.model)
        self.resolver.mark_synced(self.model.revision)
        log.info(
            "attached backend %s: %d variable(s), %d constraint(s) in %.3fs",
            backend.name, len(handles), len(rep.constraints), time.time() - t0,
        )

    # --- solve ---

    def _check_problem(self) -> None:
        backend = self.backend
        if self.model.has_nonlinear_objective() and not backend.supports_nonlinear:
            raise UnsupportedProblemError(NONLINEAR_UNSUPPORTED)
        if not self._objective_loaded:
            f = self.model.objective_function
            raise UnsupportedProblemError(
                f"backend {backend.name} does not support objective functions of type {type(f).__name__}"
            )

    def solve(self) -> None:
        if self._backend is None and self._factory is None:
            raise NoOptimizerError("no backend is attached; call set_optimizer() or attach() first")
        self.ensure_synced()
        self._check_problem()
        backend = self.backend
        log.info("solving with backend %s", backend.name)
        t0 = time.time()
        try:
            backend.solve()
        except Exception as exc:
            log.error("backend %s failed during solve: %s", backend.name, exc)
            self.results = ResultCache(
                self.model,
                revision=self.model.revision,
                status=TerminationStatus.OTHER_ERROR,
                raw=str(exc),
            )
            raise
        self.results = collect_results(self.model, backend, self.resolver)
        self._solved_revision = self.model.revision
        log.info(
            "solve finished in %.3fs: termination=%s results=%d",
            time.time() - t0, self.results.status.value, len(self.results.slots),
        )

    # --- references ---

    def backend_index(self, ref: VariableRef | ConstraintRef) -> VariableIndex | ConstraintIndex:
        return self.resolver.backend_index(ref)

    # --- results ---

    def termination_status(self) -> TerminationStatus:
        return self.results.termination_status()

    def raw_status(self) -> Optional[str]:
        return self.results.raw_status()

    def result_count(self) -> int:
        return self.results.result_count()

    def primal_status(self, result: int = 1) -> ResultStatus:
        return self.results.primal_status(result)

    def dual_status(self, result: int = 1) -> ResultStatus:
        return self.results.dual_status(result)

    def has_values(self, result: int = 1) -> bool:
        return self.results.has_values(result)

    def has_duals(self, result: int = 1) -> bool:
        return self.results.has_duals(result)

    def objective_value(self, result: int = 1) -> float:
        return self.results.objective_value(result)

    def dual_objective_value(self, result: int = 1) -> float:
        return self.results.dual_objective_value(result)

    def value(self, ref: Any, result: int = 1) -> Any:
        return self.results.value(ref, result)

    def dual(self, ref: ConstraintRef, result: int = 1) -> Any:
        return self.results.dual(ref, result)

    def simplex_iterations(self) -> Optional[int]:
        return self.results.simplex_iterations()

    def barrier_iterations(self) -> Optional[int]:
        return self.results.barrier_iterations()

    def node_count(self) -> Optional[int]:
        return self.results.node_count()

    def relative_gap(self) -> Optional[float]:
        return self.results.relative_gap()

    def solve_time(self) -> Optional[float]:
        return self.results.solve_time()


__all__ = ["BridgeState", "OptimizerBridge", "NONLINEAR_UNSUPPORTED"]
