"""Application services for the rfleet CLI.

Services implement the fleet workflows, coordinating between the domain
layer (core/, git/) and the hosting providers (remote/).
"""

from rfleet.services.fleet import ExecOptions, FleetPipeline, FleetSession, FleetSummary
from rfleet.services.gate import GateAnswer, GateController
from rfleet.services.repos import RepoService

__all__ = [
    # Pipeline
    "ExecOptions",
    "FleetPipeline",
    "FleetSession",
    "FleetSummary",
    # Gates
    "GateAnswer",
    "GateController",
    # Workspace commands
    "RepoService",
]
