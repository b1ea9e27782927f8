from __future__ import annotations

from typing import Dict, Iterator, Optional, Tuple

from ..errors import InvalidReferenceError
from ..model.expressions import VariableRef
from ..model.model import ConstraintRef, Model
from .backend import ConstraintIndex, VariableIndex


class ReferenceResolver:
    """Maps model references to backend handles for one attachment.

    The maps are rebuilt from scratch on every attach/resync; a handle is only
    handed out while the model revision matches the revision the backend was
    built from.
    """

    def __init__(self, model: Model):
        self.model = model
        self._variables: Dict[int, VariableIndex] = {}
        self._constraints: Dict[int, ConstraintIndex] = {}
        self.synced_revision: Optional[int] = None

    def reset(self) -> None:
        self._variables.clear()
        self._constraints.clear()
        self.synced_revision = None

    def record_variable(self, ref: VariableRef, vi: VariableIndex) -> None:
        self._variables[ref.index] = vi

    def record_constraint(self, ref: ConstraintRef, ci: ConstraintIndex) -> None:
        self._constraints[ref.index] = ci

    def mark_synced(self, revision: int) -> None:
        self.synced_revision = revision

    def is_synced(self) -> bool:
        return self.synced_revision is not None and self.synced_revision == self.model.revision

    def backend_index(self, ref: VariableRef | ConstraintRef) -> VariableIndex | ConstraintIndex:
        if self.synced_revision is None:
            raise InvalidReferenceError("no backend is attached")
        if self.synced_revision != self.model.revision:
            raise InvalidReferenceError(
                "the model was modified after the backend was built; call ensure_synced() first"
            )
        if getattr(ref, "model", None) is not self.model:
            raise InvalidReferenceError(f"{ref!r} does not belong to the attached model")
        if isinstance(ref, VariableRef):
            table: Dict[int, object] = self._variables
        elif isinstance(ref, ConstraintRef):
            table = self._constraints
        else:
            raise InvalidReferenceError(f"{ref!r} is not a variable or constraint reference")
        handle = table.get(ref.index)
        if handle is None:
            raise InvalidReferenceError(f"{ref!r} was created after the last attach")
        return handle  # type: ignore[return-value]

    def variables(self) -> Iterator[Tuple[int, VariableIndex]]:
        return iter(self._variables.items())

    def constraints(self) -> Iterator[Tuple[int, ConstraintIndex]]:
        return iter(self._constraints.items())


__all__ = ["ReferenceResolver"]
