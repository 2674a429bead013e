"""
Corporate API client.

One call = build payload, stamp checksum, seal, POST, open, unwrap, verify.
Every call gets a fresh correlation id, sent as ``x-fapi-uuid``, attached to
any error raised and set on the logging context.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Type, TypeVar, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from . import checksum
from .config import Settings, load_settings
from .envelope import SecureEnvelopeCodec
from .errors import AxisPayError, ChecksumMismatchError, ConfigurationError, ValidationError
from .keys import KeyMaterialService, get_key_provider
from .logging_config import audit_log, set_correlation_id
from .models import (
    AddBeneficiaryRequest,
    BalanceRequest,
    BeneficiaryEnquiryRequest,
    FundTransferRequest,
    TransferStatusRequest,
)
from .payloads import (
    build_balance_payload,
    build_bene_enquiry_payload,
    build_bene_registration_payload,
    build_status_payload,
    build_transfer_payload,
    unwrap_data,
)
from .transport import AxisTransport, build_headers
from .util import generate_uuid, mask_sensitive

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

GET_BALANCE = "get_balance"
BENE_REGISTRATION = "bene_registration"
BENE_ENQUIRY = "bene_enquiry"
TRANSFER_PAYMENT = "transfer_payment"
GET_STATUS = "get_status"


@dataclass(frozen=True)
class ApiResponse:
    """An opened bank response. ``data`` is ``body`` with ``Data`` unwrapped."""
    endpoint: str
    status_code: int
    correlation_id: str
    body: Any
    data: Any


def coerce_request(model: Type[ModelT], value: Union[ModelT, Dict[str, Any], None]) -> ModelT:
    """Validate a dict (or pass a model through), raising axispay's ValidationError."""
    if isinstance(value, model):
        return value
    try:
        return model.model_validate(value if value is not None else {})
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ())) or "body"
        raise ValidationError(field, first.get("msg", "invalid")) from e


class AxisCorporateClient:
    """
    Client for the bank's corporate payments API.

    Usage:
        with AxisCorporateClient(load_settings()) as client:
            result = client.get_balance()
            print(result.data)
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        key_service: Optional[KeyMaterialService] = None,
        transport=None,
        codec: Optional[SecureEnvelopeCodec] = None,
    ):
        self._settings = settings or load_settings()
        if not self._settings.base_url:
            raise ConfigurationError(f"No base URL configured for environment {self._settings.env!r}")

        self._owns_key_service = key_service is None
        if key_service is None:
            key_service = KeyMaterialService(get_key_provider(self._settings))
        self._key_service = key_service

        self._codec = codec or SecureEnvelopeCodec(self._key_service)

        self._owns_transport = transport is None
        self._transport = transport or AxisTransport(self._settings, self._key_service)

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def key_service(self) -> KeyMaterialService:
        return self._key_service

    def initialize(self) -> "AxisCorporateClient":
        """Load key material now rather than on the first call."""
        self._key_service.initialize()
        return self

    def shutdown(self) -> None:
        if self._owns_transport:
            self._transport.close()
        if self._owns_key_service:
            self._key_service.shutdown()

    def __enter__(self) -> "AxisCorporateClient":
        return self.initialize()

    def __exit__(self, *exc) -> None:
        self.shutdown()

    # ------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------

    def get_balance(self, request_or_account: Union[BalanceRequest, Dict[str, Any], str, None] = None) -> ApiResponse:
        """Balance of the given account, or of the configured debit account."""
        if isinstance(request_or_account, str):
            request_or_account = {"corpAccNum": request_or_account}
        request = coerce_request(BalanceRequest, request_or_account)
        logger.debug("Balance enquiry for account %s", mask_sensitive(request.corpAccNum or self._settings.corp_acc_num))
        payload = build_balance_payload(self._settings, request.corpAccNum)
        return self._call(GET_BALANCE, payload)

    def add_beneficiary(self, request: Union[AddBeneficiaryRequest, Dict[str, Any]]) -> ApiResponse:
        request = coerce_request(AddBeneficiaryRequest, request)
        payload = build_bene_registration_payload(self._settings, request)
        return self._call(BENE_REGISTRATION, payload)

    def beneficiary_enquiry(
        self,
        request: Union[BeneficiaryEnquiryRequest, Dict[str, Any], None] = None,
    ) -> ApiResponse:
        request = coerce_request(BeneficiaryEnquiryRequest, request)
        payload = build_bene_enquiry_payload(self._settings, request)
        return self._call(BENE_ENQUIRY, payload)

    def transfer_payment(self, request: Union[FundTransferRequest, Dict[str, Any]]) -> ApiResponse:
        request = coerce_request(FundTransferRequest, request)
        logger.info("Transfer (%s) to account %s", request.txnPaymode, mask_sensitive(request.beneAccNum or ""))
        payload = build_transfer_payload(self._settings, request)
        return self._call(TRANSFER_PAYMENT, payload)

    def get_transfer_status(self, request_or_crn: Union[TransferStatusRequest, Dict[str, Any], str]) -> ApiResponse:
        if isinstance(request_or_crn, str):
            request_or_crn = {"crn": request_or_crn}
        request = coerce_request(TransferStatusRequest, request_or_crn)
        payload = build_status_payload(self._settings, request.crn)
        return self._call(GET_STATUS, payload)

    # ------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------

    def _call(self, endpoint: str, payload: Dict[str, Any]) -> ApiResponse:
        correlation_id = set_correlation_id(generate_uuid())
        try:
            url = self._settings.endpoint_url(endpoint)
            token = self._codec.seal_and_sign(payload)
            headers = build_headers(self._settings, correlation_id)

            audit_log.api_request(endpoint, correlation_id)
            response = self._transport.post(url, token, headers)

            body = self._codec.verify_and_open(response.text)
            data = unwrap_data(body)
            self._check_response(endpoint, data, correlation_id)
        except AxisPayError as e:
            e.with_correlation_id(correlation_id)
            logger.error("%s failed: %s", endpoint, e.kind)
            raise

        audit_log.api_response(endpoint, response.status_code, correlation_id)
        return ApiResponse(
            endpoint=endpoint,
            status_code=response.status_code,
            correlation_id=correlation_id,
            body=body,
            data=data,
        )

    def _check_response(self, endpoint: str, data: Any, correlation_id: str) -> None:
        if not self._settings.verify_response_checksum:
            return
        if not isinstance(data, dict) or not data.get(checksum.CHECKSUM_FIELD):
            return
        if not checksum.verify(data):
            audit_log.checksum_mismatch(endpoint, correlation_id)
            raise ChecksumMismatchError("Response checksum does not match its contents")
