"""
Shared endpoint dependencies.
"""

from fastapi import Request

from feedvault.services.container import PipelineContainer


def get_container(request: Request) -> PipelineContainer:
    """The pipeline wired up in the application lifespan."""
    return request.app.state.container
