"""Transition-table state machines bound to domain objects.

A ``Graph`` names the attribute holding the state and the allowed
transitions.  ``StateMachineFactory.get(obj, graph_name)`` binds a graph
to one object; ``apply()`` validates the transition against the current
state and writes the target state back onto the object.

Only the shop billing graph ships with the SDK:

    unpaid --pay--> paid
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from shop_appstore.exceptions import StateMachineError, TransitionNotAllowedError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Transition:
    name: str
    from_states: frozenset[str]
    to_state: str


@dataclass(frozen=True)
class Graph:
    """Named set of states and transitions stored on ``property_path``."""

    name: str
    property_path: str
    states: frozenset[str]
    transitions: Mapping[str, Transition] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for transition in self.transitions.values():
            unknown = (transition.from_states | {transition.to_state}) - self.states
            if unknown:
                raise StateMachineError(
                    f"Graph {self.name!r}: transition {transition.name!r} "
                    f"references unknown states {sorted(unknown)}"
                )


@runtime_checkable
class StateMachine(Protocol):
    """A graph bound to one object."""

    def can(self, transition: str) -> bool: ...

    def apply(self, transition: str, soft: bool = False) -> bool: ...


class GraphStateMachine:
    """Default ``StateMachine``: reads and writes ``graph.property_path``."""

    def __init__(self, obj: Any, graph: Graph) -> None:
        self._obj = obj
        self._graph = graph

    @property
    def graph(self) -> Graph:
        return self._graph

    @property
    def state(self) -> str | None:
        return getattr(self._obj, self._graph.property_path, None)

    def can(self, transition: str) -> bool:
        candidate = self._graph.transitions.get(transition)
        if candidate is None:
            raise StateMachineError(
                f"Transition {transition!r} does not exist in graph {self._graph.name!r}"
            )
        return self.state in candidate.from_states

    def apply(self, transition: str, soft: bool = False) -> bool:
        """Apply *transition*; returns ``False`` instead of raising when *soft*."""
        if not self.can(transition):
            if soft:
                return False
            raise TransitionNotAllowedError(self._graph.name, transition, self.state)

        previous = self.state
        target = self._graph.transitions[transition].to_state
        setattr(self._obj, self._graph.property_path, target)
        logger.info(
            "State transition graph=%s transition=%s %s -> %s",
            self._graph.name,
            transition,
            previous,
            target,
        )
        return True

    def possible_transitions(self) -> list[str]:
        return [name for name, t in self._graph.transitions.items() if self.state in t.from_states]


class StateMachineFactory:
    """Builds ``GraphStateMachine`` instances for registered graphs."""

    def __init__(self, graphs: Iterable[Graph] = ()) -> None:
        self._graphs: dict[str, Graph] = {}
        for graph in graphs:
            self.add_graph(graph)

    def add_graph(self, graph: Graph) -> None:
        if graph.name in self._graphs:
            raise StateMachineError(f"Graph {graph.name!r} is already registered")
        self._graphs[graph.name] = graph

    def get(self, obj: Any, graph_name: str) -> GraphStateMachine:
        graph = self._graphs.get(graph_name)
        if graph is None:
            raise StateMachineError(f"Graph {graph_name!r} is not registered")
        return GraphStateMachine(obj, graph)


# ---------------------------------------------------------------------------
# Shop billing graph
# ---------------------------------------------------------------------------


class ShopBillingTransitions:
    GRAPH = "shop_billing"

    STATE_UNPAID = "unpaid"
    STATE_PAID = "paid"

    TRANSITION_PAY = "pay"


BILLING_GRAPH = Graph(
    name=ShopBillingTransitions.GRAPH,
    property_path="billing_state",
    states=frozenset({ShopBillingTransitions.STATE_UNPAID, ShopBillingTransitions.STATE_PAID}),
    transitions={
        ShopBillingTransitions.TRANSITION_PAY: Transition(
            name=ShopBillingTransitions.TRANSITION_PAY,
            from_states=frozenset({ShopBillingTransitions.STATE_UNPAID}),
            to_state=ShopBillingTransitions.STATE_PAID,
        ),
    },
)


def default_state_machine_factory() -> StateMachineFactory:
    return StateMachineFactory([BILLING_GRAPH])
