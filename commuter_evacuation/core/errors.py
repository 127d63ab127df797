"""
Exceptions raised by the commuter evacuation core.

Planning failures and obstructions are recovered inside the agent's step;
placement failures reject a single agent at setup without stopping the run.
"""


class SimulationError(Exception):
    """Base class for all model errors."""


class InvalidNetworkError(SimulationError, ValueError):
    """Raised for degenerate edges, duplicate ids or writes to a frozen network."""


class PlanningFailure(SimulationError):
    """No route exists between a node and a target in the given network."""

    def __init__(self, source, target, reason=None):
        self.source = source
        self.target = target
        self.reason = reason
        message = f"No route from node {source} to {target}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class ObstructionEncountered(SimulationError):
    """An edge on the current path is impassable."""

    def __init__(self, edge):
        self.edge = edge
        super().__init__(f"Edge {edge.edge_id} is closed")


class MissingInitialPlacement(SimulationError):
    """An agent seed could not be localised onto any edge."""

    def __init__(self, agent_key, detail=""):
        self.agent_key = agent_key
        super().__init__(f"Agent {agent_key} could not be placed on the network{': ' + detail if detail else ''}")
