import logging
from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .callback import open_callback
from .client import ApiResponse, AxisCorporateClient
from .config import is_debug, load_settings, validate_config
from .errors import (
    AxisPayError,
    ChecksumMismatchError,
    ConfigurationError,
    DecryptionError,
    KeyLoadError,
    MalformedPayloadError,
    SignatureInvalidError,
    TransportError,
    ValidationError,
)
from .logging_config import configure_logging, get_correlation_id
from .models import (
    AddBeneficiaryRequest,
    BalanceRequest,
    BeneficiaryEnquiryRequest,
    FundTransferRequest,
    TransferStatusRequest,
)

logger = logging.getLogger(__name__)

UNTRUSTED_RESPONSE_ERRORS = (
    ChecksumMismatchError,
    SignatureInvalidError,
    DecryptionError,
    MalformedPayloadError,
)


def status_for(error: AxisPayError) -> int:
    """HTTP status for an axispay error."""
    if isinstance(error, ValidationError):
        return 400
    if isinstance(error, UNTRUSTED_RESPONSE_ERRORS):
        return 502
    if isinstance(error, TransportError):
        if error.timeout:
            return 504
        if error.status_code and error.status_code >= 400:
            return error.status_code
        return 502
    if isinstance(error, (KeyLoadError, ConfigurationError)):
        return 503
    return 500


def _default_client() -> AxisCorporateClient:
    settings = load_settings()
    configure_logging(settings.log_level, settings.log_json)
    missing = [name for name, exists in validate_config(settings).items() if not exists]
    if missing:
        logger.warning("Configured files not found: %s", ", ".join(sorted(missing)))
    return AxisCorporateClient(settings)


def _result(response: ApiResponse) -> dict:
    return {
        "status_code": response.status_code,
        "correlation_id": response.correlation_id,
        "data": response.data,
    }


def get_client(request: Request) -> AxisCorporateClient:
    return request.app.state.client


def create_app(client_factory: Optional[Callable[[], AxisCorporateClient]] = None) -> FastAPI:
    """
    Build the service. The client (and with it the key material) is created
    at startup; a key load failure aborts startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        client = (client_factory or _default_client)()
        client.initialize()
        app.state.client = client
        try:
            yield
        finally:
            client.shutdown()

    app = FastAPI(title="axispay", debug=is_debug(), lifespan=lifespan)

    @app.exception_handler(AxisPayError)
    async def _axispay_error(request: Request, exc: AxisPayError):
        status = status_for(exc)
        logger.warning("%s %s -> %s (%s)", request.method, request.url.path, status, exc.kind)
        return JSONResponse(status_code=status, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def _request_invalid(request: Request, exc: RequestValidationError):
        fields = [".".join(str(p) for p in err.get("loc", ())) for err in exc.errors()]
        return JSONResponse(
            status_code=422,
            content={"error": ValidationError.kind, "correlation_id": None, "fields": fields},
        )

    @app.get("/health")
    def health(client: AxisCorporateClient = Depends(get_client)):
        return {
            "status": "ok",
            "env": client.settings.env,
            "key_material_loaded": client.key_service.initialized,
        }

    @app.post("/balance")
    def balance(req: BalanceRequest, client: AxisCorporateClient = Depends(get_client)):
        return _result(client.get_balance(req))

    @app.post("/beneficiaries")
    def add_beneficiary(req: AddBeneficiaryRequest, client: AxisCorporateClient = Depends(get_client)):
        return _result(client.add_beneficiary(req))

    @app.post("/beneficiaries/enquiry")
    def beneficiary_enquiry(req: BeneficiaryEnquiryRequest, client: AxisCorporateClient = Depends(get_client)):
        return _result(client.beneficiary_enquiry(req))

    @app.post("/fund-transfer")
    def fund_transfer(req: FundTransferRequest, client: AxisCorporateClient = Depends(get_client)):
        return _result(client.transfer_payment(req))

    @app.post("/fund-transfer/status")
    def transfer_status(req: TransferStatusRequest, client: AxisCorporateClient = Depends(get_client)):
        return _result(client.get_transfer_status(req))

    @app.post("/callback")
    async def callback(
        request: Request,
        mode: str = Query("cbc", pattern="^(cbc|ecb)$"),
        client: AxisCorporateClient = Depends(get_client),
    ):
        raw = (await request.body()).decode("ascii", errors="replace")
        body = open_callback(raw, client.settings.callback_aes_key_hex, mode=mode)
        return {"status_code": 200, "correlation_id": get_correlation_id() or None, "data": body}

    return app


app = create_app()
