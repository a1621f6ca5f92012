"""
Dependency table and cascade resolution.

Every `depends_on` edge of a FieldSpec becomes part of a DependencyRule
keyed by the upstream (trigger) field. The rule graph must be acyclic;
resolution is a single pass over its topological order.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from .errors import DefinitionError, DependencyCycleError
from .fields import FieldSpec, FieldType, Option, ResetPolicy, is_empty
from .store import FieldStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DependencyRule:
    """
    What to do when `trigger` changes.

    fields_to_clear are reset to their reset value; fields_to_recompute get
    their option set re-derived and lose any selection that is no longer
    offered.
    """

    trigger: str
    fields_to_clear: Tuple[str, ...] = ()
    fields_to_recompute: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "fields_to_clear", tuple(self.fields_to_clear))
        object.__setattr__(self, "fields_to_recompute", tuple(self.fields_to_recompute))

    @property
    def targets(self) -> Tuple[str, ...]:
        return self.fields_to_clear + self.fields_to_recompute

    def merge(self, other: "DependencyRule") -> "DependencyRule":
        clear = list(self.fields_to_clear)
        clear.extend(f for f in other.fields_to_clear if f not in clear)
        recompute = [f for f in self.fields_to_recompute if f not in clear]
        recompute.extend(
            f for f in other.fields_to_recompute if f not in clear and f not in recompute
        )
        return DependencyRule(self.trigger, tuple(clear), tuple(recompute))


@dataclass(frozen=True)
class Resolution:
    """Outcome of one cascade pass."""

    store: FieldStore
    changed: Tuple[str, ...] = ()
    cleared: Tuple[str, ...] = ()
    options: Mapping[str, Tuple[Option, ...]] = field(default_factory=dict)


def derive_rules(
    fields: Sequence[FieldSpec], extra_rules: Iterable[DependencyRule] = ()
) -> Dict[str, DependencyRule]:
    """Build the trigger -> rule table from field declarations plus explicit rules."""
    table: Dict[str, DependencyRule] = {}
    for spec in fields:
        for upstream in sorted(spec.depends_on):
            if spec.reset == ResetPolicy.CLEAR:
                rule = DependencyRule(upstream, fields_to_clear=(spec.id,))
            else:
                rule = DependencyRule(upstream, fields_to_recompute=(spec.id,))
            table[upstream] = table[upstream].merge(rule) if upstream in table else rule
    for rule in extra_rules:
        table[rule.trigger] = table[rule.trigger].merge(rule) if rule.trigger in table else rule
    return table


def topological_order(nodes: Sequence[str], graph: Mapping[str, Set[str]]) -> List[str]:
    """
    Kahn's algorithm over `graph` (parent -> children).

    Ties are broken by the position of the node in `nodes`, so the order is
    stable for a given definition.

    Raises:
        DependencyCycleError: If the graph is not a DAG
    """
    position = {node: i for i, node in enumerate(nodes)}
    indegree: Dict[str, int] = {node: 0 for node in nodes}
    for parent in graph:
        for child in graph[parent]:
            indegree[child] = indegree.get(child, 0) + 1

    queue = sorted((n for n, degree in indegree.items() if degree == 0), key=position.get)
    order: List[str] = []
    while queue:
        node = queue.pop(0)
        order.append(node)
        released = []
        for child in graph.get(node, set()):
            indegree[child] -= 1
            if indegree[child] == 0:
                released.append(child)
        if released:
            queue = sorted(queue + released, key=position.get)

    if len(order) != len(indegree):
        raise DependencyCycleError(n for n in indegree if n not in order)
    return order


class DependencyResolver:
    """
    Applies the dependency table to a FieldStore.

    Resolution walks the precomputed topological order once, so every field
    is visited at most one time per pass and the cascade always terminates.
    """

    def __init__(self, fields: Sequence[FieldSpec], rules: Iterable[DependencyRule] = ()):
        self._fields: Dict[str, FieldSpec] = {spec.id: spec for spec in fields}
        self._rules = derive_rules(fields, rules)
        self._check_references()

        self._graph: Dict[str, Set[str]] = {}
        self._upstream: Dict[str, Set[str]] = {fid: set() for fid in self._fields}
        for trigger, rule in self._rules.items():
            for target in rule.targets:
                self._graph.setdefault(trigger, set()).add(target)
                self._upstream[target].add(trigger)

        self._order = topological_order(list(self._fields), self._graph)

    def _check_references(self):
        for trigger, rule in self._rules.items():
            for fid in (trigger,) + rule.targets:
                if fid not in self._fields:
                    raise DefinitionError(
                        f"Dependency rule for '{trigger}' references unknown field '{fid}'"
                    )

    @property
    def rules(self) -> Mapping[str, DependencyRule]:
        return dict(self._rules)

    @property
    def order(self) -> Tuple[str, ...]:
        return tuple(self._order)

    def rule_for(self, trigger: str) -> Optional[DependencyRule]:
        return self._rules.get(trigger)

    def dependents(self, field_id: str) -> List[str]:
        """Direct and transitive dependents of a field, in resolution order."""
        reached = {field_id}
        result = []
        for fid in self._order:
            if self._upstream[fid] & reached:
                reached.add(fid)
                result.append(fid)
        return result

    def upstream_values(self, field_id: str, store: Mapping[str, Any]) -> Dict[str, Any]:
        spec = self._fields[field_id]
        return {dep: store.get(dep) for dep in sorted(spec.depends_on)}

    def options_for(self, field_id: str, store: Mapping[str, Any]) -> Tuple[Option, ...]:
        """Current option set of a field, derived from its upstream values."""
        spec = self._fields[field_id]
        return tuple(spec.option_list(self.upstream_values(field_id, store)))

    def resolve(self, store: FieldStore, changed_field: str) -> Resolution:
        """
        Cascade the change of `changed_field` through its dependents.

        If the changed field is now empty, every direct and transitive
        dependent is cleared regardless of its reset policy.
        """
        emptied = {changed_field} if is_empty(store.get(changed_field)) else set()
        return self._cascade(store, {changed_field}, emptied, set())

    def refresh(self, store: FieldStore, field_ids: Iterable[str]) -> Resolution:
        """
        Recompute option sets for `field_ids` and drop stale selections.

        Any selection dropped here cascades to its own dependents in the
        same pass.
        """
        targets = {fid for fid in field_ids if fid in self._fields}
        return self._cascade(store, set(), set(), targets)

    def _cascade(
        self, store: FieldStore, changed: Set[str], emptied: Set[str], targets: Set[str]
    ) -> Resolution:
        seeds = set(changed)
        cleared: List[str] = []
        options: Dict[str, Tuple[Option, ...]] = {}

        for fid in self._order:
            if fid in seeds:
                continue
            spec = self._fields[fid]
            triggers = self._upstream[fid] & changed
            if not triggers and fid not in targets:
                continue

            if triggers and (triggers & emptied or self._clears(triggers, fid)):
                value = spec.reset_value()
                store = store.set(fid, value)
                changed.add(fid)
                cleared.append(fid)
                if is_empty(value):
                    emptied.add(fid)
                if spec.options is not None:
                    options[fid] = self.options_for(fid, store)
                continue

            if spec.options is None:
                continue
            offered = self.options_for(fid, store)
            options[fid] = offered
            current = store.get(fid)
            pruned = self._prune(spec, current, offered)
            if pruned != current:
                logger.debug("Dropping stale selection for %s: %r", fid, current)
                store = store.set(fid, pruned)
                changed.add(fid)
                if is_empty(pruned):
                    emptied.add(fid)

        return Resolution(
            store=store,
            changed=tuple(f for f in self._order if f in changed and f not in seeds),
            cleared=tuple(cleared),
            options=options,
        )

    def _clears(self, triggers: Set[str], field_id: str) -> bool:
        return any(field_id in self._rules[t].fields_to_clear for t in triggers)

    @staticmethod
    def _prune(spec: FieldSpec, value: Any, offered: Sequence[Option]) -> Any:
        ids = {option.id for option in offered}
        if spec.type == FieldType.MULTI_SELECT:
            return [item for item in (value or []) if item in ids]
        if spec.type == FieldType.SELECT:
            if value is None or value in ids:
                return value
            return spec.reset_value()
        return value
