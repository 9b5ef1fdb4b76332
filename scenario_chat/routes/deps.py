"""Request-scoped access to the process-wide Services."""

from fastapi import Request

from scenario_chat.context import Services


def get_services(request: Request) -> Services:
    return request.app.state.services
