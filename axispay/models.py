import re
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"
AMOUNT_PATTERN = r"^\d{1,13}(\.\d{1,2})?$"
MOBILE_PATTERN = r"^[0-9]{10}$"
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

TxnPaymode = Literal["RT", "NE", "PA", "FT", "CC", "DD"]
TxnType = Literal["CUST", "MERC", "DIST", "INTN", "VEND"]
BeneAcType = Literal["SB", "CA", "CC", "OD"]

ACCOUNT_REQUIRED_PAYMODES = ("RT", "NE", "FT")
IFSC_REQUIRED_PAYMODES = ("RT", "NE")


def _check_date(value: Optional[str]) -> Optional[str]:
    if value:
        datetime.strptime(value, "%Y-%m-%d")
    return value


class AxisRequest(BaseModel):
    """Base for caller-facing request schemas. Unknown fields are dropped."""
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)


class BalanceRequest(AxisRequest):
    corpAccNum: Optional[str] = Field(default=None, max_length=30)


class TransferStatusRequest(AxisRequest):
    crn: str = Field(min_length=1, max_length=30)


class BeneficiaryEnquiryRequest(AxisRequest):
    beneCode: Optional[str] = Field(default=None, max_length=30)
    status: str = Field(default="All", max_length=20)
    emailId: Optional[str] = Field(default=None, max_length=250, pattern=EMAIL_PATTERN)


class AddBeneficiaryRequest(AxisRequest):
    beneCode: Optional[str] = Field(default=None, max_length=30)
    beneName: str = Field(min_length=1, max_length=70)
    beneAddr: Optional[str] = Field(default=None, max_length=100)
    beneCity: Optional[str] = Field(default=None, max_length=50)
    beneState: Optional[str] = Field(default=None, max_length=50)
    benePincode: Optional[str] = Field(default=None, max_length=10)
    beneAccNum: str = Field(min_length=1, max_length=30)
    beneIfscCode: str = Field(min_length=11, max_length=11)
    beneBankName: Optional[str] = Field(default=None, max_length=70)
    beneMobileNo: Optional[str] = Field(default=None, pattern=MOBILE_PATTERN)
    beneEmailAddr: Optional[str] = Field(
        default=None,
        max_length=250,
        pattern=EMAIL_PATTERN,
        validation_alias=AliasChoices("beneEmailAddr", "beneEmailAddr1"),
    )
    beneAcType: Optional[BeneAcType] = None


class FundTransferRequest(AxisRequest):
    txnPaymode: TxnPaymode
    custUniqRef: str = Field(min_length=1, max_length=30)
    txnType: TxnType = "CUST"
    txnAmount: str
    corpAccNum: Optional[str] = Field(default=None, max_length=30)
    beneCode: str = Field(min_length=1, max_length=30)
    beneName: str = Field(min_length=1, max_length=70)
    valueDate: str = Field(pattern=DATE_PATTERN)
    beneAccNum: Optional[str] = Field(default=None, max_length=30)
    beneIfscCode: Optional[str] = None
    beneAcType: Optional[str] = Field(default=None, max_length=10)
    beneLEI: Optional[str] = Field(default=None, max_length=100)
    beneAddr1: Optional[str] = Field(default=None, max_length=100)
    beneAddr2: Optional[str] = Field(default=None, max_length=100)
    beneAddr3: Optional[str] = Field(default=None, max_length=100)
    beneCity: Optional[str] = Field(default=None, max_length=50)
    beneState: Optional[str] = Field(default=None, max_length=50)
    benePincode: Optional[str] = Field(default=None, max_length=10)
    beneBankName: Optional[str] = Field(default=None, max_length=70)
    beneEmailAddr1: Optional[str] = Field(default=None, max_length=250, pattern=EMAIL_PATTERN)
    beneMobileNo: Optional[str] = Field(default=None, pattern=MOBILE_PATTERN)
    productCode: Optional[str] = Field(default=None, max_length=20)
    senderToReceiverInfo: Optional[str] = Field(default=None, max_length=500)
    baseCode: Optional[str] = Field(default=None, max_length=30)
    chequeNumber: Optional[str] = Field(default=None, max_length=20)
    chequeDate: Optional[str] = Field(default=None, pattern=DATE_PATTERN)
    payableLocation: Optional[str] = Field(default=None, max_length=50)
    printLocation: Optional[str] = Field(default=None, max_length=50)
    invoiceDetails: Optional[Union[Dict[str, Any], List[Dict[str, Any]]]] = None
    enrichment1: Optional[str] = None
    enrichment2: Optional[str] = None
    enrichment3: Optional[str] = None
    enrichment4: Optional[str] = None
    enrichment5: Optional[str] = None

    @field_validator("txnAmount", mode="before")
    @classmethod
    def _amount_as_text(cls, value: Any) -> Any:
        if isinstance(value, bool):
            raise ValueError("txnAmount must be a decimal string")
        if isinstance(value, (int, float, Decimal)):
            return str(value)
        return value

    @field_validator("txnAmount")
    @classmethod
    def _normalize_amount(cls, value: str) -> str:
        value = value.strip()
        if not re.match(AMOUNT_PATTERN, value):
            raise ValueError("txnAmount must have at most 13 integer digits and 2 decimals")
        return format(Decimal(value).quantize(Decimal("0.01")), "f")

    @field_validator("valueDate", "chequeDate")
    @classmethod
    def _real_date(cls, value: Optional[str]) -> Optional[str]:
        try:
            return _check_date(value)
        except ValueError:
            raise ValueError("must be a calendar date in YYYY-MM-DD form")

    @model_validator(mode="after")
    def _paymode_requirements(self) -> "FundTransferRequest":
        if self.txnPaymode in ACCOUNT_REQUIRED_PAYMODES and not self.beneAccNum:
            raise ValueError(f"beneAccNum is required for payment mode {self.txnPaymode}")
        if self.txnPaymode in IFSC_REQUIRED_PAYMODES:
            if not self.beneIfscCode or len(self.beneIfscCode) != 11:
                raise ValueError(f"beneIfscCode of 11 characters is required for payment mode {self.txnPaymode}")
        return self
