"""
Request body builders for the bank's corporate API.

Each builder returns ``{"Data": {...}}`` with the fields in the order the
bank documents them and ``checksum`` computed over them as the last field.
"""

from typing import Any, Dict, Optional

from . import checksum
from .config import Settings
from .errors import ValidationError
from .models import (
    AddBeneficiaryRequest,
    BeneficiaryEnquiryRequest,
    FundTransferRequest,
)
from .util import now_epoch_millis

DATA_KEY = "Data"
BENE_API_VERSION = "1.0"
BENE_CODE_PREFIX = "BENE"


def wrap_data(data: Dict[str, Any]) -> Dict[str, Any]:
    return {DATA_KEY: data}


def unwrap_data(payload: Any) -> Any:
    """Return ``payload["Data"]`` (or ``["data"]``) when present, else the payload."""
    if isinstance(payload, dict):
        for key in (DATA_KEY, "data"):
            if key in payload:
                return payload[key]
    return payload


def default_bene_code(prefix: str = BENE_CODE_PREFIX) -> str:
    return f"{prefix}_{now_epoch_millis()}"


def _text(value: Optional[str]) -> str:
    return value if value is not None else ""


def _seal(data: Dict[str, Any]) -> Dict[str, Any]:
    return wrap_data(checksum.with_checksum(data))


def build_balance_payload(settings: Settings, corp_acc_num: Optional[str] = None) -> Dict[str, Any]:
    """Balance enquiry for ``corp_acc_num`` or the configured debit account."""
    account = corp_acc_num or settings.corp_acc_num
    if not account:
        raise ValidationError("corpAccNum", "No account given and no default account configured")
    return _seal({
        "corpAccNum": account,
        "channelId": settings.channel_id,
        "corpCode": settings.corp_code,
    })


def build_status_payload(settings: Settings, crn: str) -> Dict[str, Any]:
    if not crn:
        raise ValidationError("crn", "Customer reference is required")
    return _seal({
        "channelId": settings.channel_id,
        "corpCode": settings.corp_code,
        "crn": crn,
    })


def build_bene_enquiry_payload(settings: Settings, request: BeneficiaryEnquiryRequest) -> Dict[str, Any]:
    return _seal({
        "channelId": settings.channel_id,
        "corpCode": settings.corp_code,
        "beneCode": _text(request.beneCode),
        "status": request.status,
        "emailId": _text(request.emailId),
    })


def build_bene_registration_payload(settings: Settings, request: AddBeneficiaryRequest) -> Dict[str, Any]:
    """
    Beneficiary registration. One record is sent per call under
    ``beneinsert``; the record itself carries no checksum.
    """
    record = {
        "apiVersion": BENE_API_VERSION,
        "beneCode": request.beneCode or default_bene_code(),
        "beneName": request.beneName,
        "beneAccNum": request.beneAccNum,
        "beneIfscCode": request.beneIfscCode,
        "beneAcType": _text(request.beneAcType),
        "beneBankName": _text(request.beneBankName),
        "beneEmailAddr1": _text(request.beneEmailAddr),
        "beneMobileNo": _text(request.beneMobileNo),
    }
    return _seal({
        "channelId": settings.channel_id,
        "corpCode": settings.corp_code,
        "userId": settings.user_id,
        "beneinsert": [record],
    })


def build_transfer_payload(settings: Settings, request: FundTransferRequest) -> Dict[str, Any]:
    """Fund transfer. ``corpAccNum`` falls back to the configured debit account."""
    corp_acc_num = request.corpAccNum or settings.corp_acc_num
    if not corp_acc_num:
        raise ValidationError("corpAccNum", "No debit account given and no default account configured")

    payment_details = {
        "txnPaymode": request.txnPaymode,
        "custUniqRef": request.custUniqRef,
        "txnType": request.txnType,
        "txnAmount": request.txnAmount,
        "beneLEI": _text(request.beneLEI),
        "corpAccNum": corp_acc_num,
        "beneCode": request.beneCode,
        "valueDate": request.valueDate,
        "beneName": request.beneName,
        "beneAccNum": _text(request.beneAccNum),
        "beneAcType": _text(request.beneAcType),
        "beneAddr1": _text(request.beneAddr1),
        "beneAddr2": _text(request.beneAddr2),
        "beneAddr3": _text(request.beneAddr3),
        "beneCity": _text(request.beneCity),
        "beneState": _text(request.beneState),
        "benePincode": _text(request.benePincode),
        "beneIfscCode": _text(request.beneIfscCode),
        "beneBankName": _text(request.beneBankName),
        "baseCode": _text(request.baseCode),
        "chequeNumber": _text(request.chequeNumber),
        "chequeDate": _text(request.chequeDate),
        "payableLocation": _text(request.payableLocation),
        "printLocation": _text(request.printLocation),
        "beneEmailAddr1": _text(request.beneEmailAddr1),
        "beneMobileNo": _text(request.beneMobileNo),
        "productCode": _text(request.productCode),
        "invoiceDetails": request.invoiceDetails if request.invoiceDetails is not None else {},
        "enrichment1": _text(request.enrichment1),
        "enrichment2": _text(request.enrichment2),
        "enrichment3": _text(request.enrichment3),
        "enrichment4": _text(request.enrichment4),
        "enrichment5": _text(request.enrichment5),
        "senderToReceiverInfo": _text(request.senderToReceiverInfo),
    }
    return _seal({
        "channelId": settings.channel_id,
        "corpCode": settings.corp_code,
        "paymentDetails": payment_details,
    })
