from fastapi import Request

from ..services import AccountService


def get_account_service(request: Request) -> AccountService:
    return request.app.state.account_service
