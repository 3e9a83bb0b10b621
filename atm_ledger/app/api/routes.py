from fastapi import APIRouter, Depends, status

from ..core.dependencies import get_account_service
from ..models import (
    AccountDetail,
    AccountSummary,
    HealthResponse,
    LedgerEntryResponse,
    LoginRequest,
    LoginResponse,
    MoneyMovementRequest,
    MoneyMovementResponse,
    SignupRequest,
    SignupResponse,
    TransactionsResponse,
    UserResponse,
)
from ..services import AccountService


router = APIRouter(prefix="/api", tags=["accounts"])

@router.get("/test", response_model=HealthResponse)
def read_test() -> HealthResponse:
    return HealthResponse(message="Backend is running!", database="Connected")

@router.post("/signup", response_model=SignupResponse, status_code=status.HTTP_201_CREATED)
def signup(
    payload: SignupRequest,
    service: AccountService = Depends(get_account_service),
) -> SignupResponse:
    account = service.create_account(
        payload.name,
        payload.email,
        payload.card_number,
        payload.pin,
        payload.balance,
    )
    return SignupResponse(
        message="Account created successfully!",
        user=AccountSummary.model_validate(account),
    )

@router.post("/login", response_model=LoginResponse)
def login(
    payload: LoginRequest,
    service: AccountService = Depends(get_account_service),
) -> LoginResponse:
    account = service.authenticate(payload.card_number, payload.pin)
    return LoginResponse(
        message="Login successful!",
        user=AccountDetail.model_validate(account),
    )

@router.get("/user/{account_id}", response_model=UserResponse)
def get_user(
    account_id: str,
    service: AccountService = Depends(get_account_service),
) -> UserResponse:
    account = service.get_account(account_id)
    return UserResponse(user=AccountDetail.model_validate(account))

@router.post("/deposit", response_model=MoneyMovementResponse)
def deposit(
    payload: MoneyMovementRequest,
    service: AccountService = Depends(get_account_service),
) -> MoneyMovementResponse:
    balance, entry = service.deposit(payload.user_id, payload.amount)
    return MoneyMovementResponse(
        message=f"Successfully deposited ${entry.amount}",
        balance=balance,
        transaction=LedgerEntryResponse.model_validate(entry),
    )

@router.post("/withdraw", response_model=MoneyMovementResponse)
def withdraw(
    payload: MoneyMovementRequest,
    service: AccountService = Depends(get_account_service),
) -> MoneyMovementResponse:
    balance, entry = service.withdraw(payload.user_id, payload.amount)
    return MoneyMovementResponse(
        message=f"Successfully withdrew ${entry.amount}",
        balance=balance,
        transaction=LedgerEntryResponse.model_validate(entry),
    )

@router.get("/transactions/{account_id}", response_model=TransactionsResponse)
def list_transactions(
    account_id: str,
    service: AccountService = Depends(get_account_service),
) -> TransactionsResponse:
    entries = service.list_transactions(account_id)
    return TransactionsResponse(
        transactions=[LedgerEntryResponse.model_validate(entry) for entry in entries],
    )

__all__ = ["router"]
