from pydantic import BaseModel, Field, field_validator
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, List, Literal

from loan_app.utils.loan_calculations import EmiPolicy

HpEntry = Literal["Not done", "Applied", "Finished"]


def _clean_list(v):
    # blank rows from the form are dropped
    if v is None:
        return v
    if isinstance(v, str):
        v = [v]
    return [str(x).strip() for x in v if x is not None and str(x).strip()]


class LoanCreate(BaseModel):
    loan_number: str = Field(min_length=1, max_length=50)
    customer_name: str = Field(min_length=1)
    mobile_number: str = Field(min_length=1)
    alternate_mobile: Optional[str] = None
    address: Optional[str] = None
    own_rent: Optional[str] = None
    pan_number: Optional[str] = None
    aadhar_number: Optional[str] = None
    guarantor_name: Optional[str] = None
    additional_mobile_numbers: List[str] = Field(default_factory=list)
    guarantor_mobile_numbers: List[str] = Field(default_factory=list)

    principal_amount: Decimal = Field(gt=0)
    annual_interest_rate: Decimal = Field(ge=0)
    tenure_months: int = Field(gt=0)
    tenure_type: str = "Monthly"

    processing_fee_rate: Optional[Decimal] = Field(default=None, ge=0)
    processing_fee: Optional[Decimal] = Field(default=None, ge=0)

    date_loan_disbursed: Optional[date] = None
    emi_start_date: Optional[date] = None

    vehicle_number: Optional[str] = None
    chassis_number: Optional[str] = None
    engine_number: Optional[str] = None
    model: Optional[str] = None
    type_of_vehicle: Optional[str] = None
    dealer_name: Optional[str] = None
    dealer_number: Optional[str] = None
    yw_board: Optional[str] = None
    hp_entry: Optional[HpEntry] = None
    fc_date: Optional[date] = None
    insurance_date: Optional[date] = None
    rto_work_pending: List[str] = Field(default_factory=list)
    doc_checklist: Optional[str] = None

    remarks: Optional[str] = None

    @field_validator("loan_number", "customer_name", "mobile_number", mode="before")
    def strip_required(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator(
        "alternate_mobile", "address", "own_rent", "pan_number", "aadhar_number",
        "guarantor_name", "vehicle_number", "chassis_number", "engine_number",
        "model", "type_of_vehicle", "dealer_name", "dealer_number", "yw_board",
        "hp_entry", "doc_checklist", "remarks",
        mode="before",
    )
    def empty_to_none(cls, v):
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    @field_validator("tenure_type", mode="before")
    def default_tenure_type(cls, v):
        v = str(v).strip() if v is not None else ""
        return v or "Monthly"

    @field_validator("additional_mobile_numbers", "guarantor_mobile_numbers", "rto_work_pending", mode="before")
    def drop_blank_entries(cls, v):
        return _clean_list(v) or []


class CustomerLoanCreate(LoanCreate):
    """Customer onboarding: address and loan start date are mandatory."""

    address: str = Field(min_length=1)
    loan_start_date: date

    def to_loan_fields(self) -> dict:
        data = self.model_dump(exclude={"loan_start_date"})
        data["date_loan_disbursed"] = self.loan_start_date
        data["emi_start_date"] = self.emi_start_date or self.loan_start_date
        return data


class LoanUpdate(BaseModel):
    loan_number: Optional[str] = Field(default=None, min_length=1, max_length=50)
    customer_name: Optional[str] = Field(default=None, min_length=1)
    mobile_number: Optional[str] = Field(default=None, min_length=1)
    alternate_mobile: Optional[str] = None
    address: Optional[str] = None
    own_rent: Optional[str] = None
    pan_number: Optional[str] = None
    aadhar_number: Optional[str] = None
    guarantor_name: Optional[str] = None
    additional_mobile_numbers: Optional[List[str]] = None
    guarantor_mobile_numbers: Optional[List[str]] = None

    principal_amount: Optional[Decimal] = Field(default=None, gt=0)
    annual_interest_rate: Optional[Decimal] = Field(default=None, ge=0)
    tenure_months: Optional[int] = Field(default=None, gt=0)
    tenure_type: Optional[str] = None

    processing_fee_rate: Optional[Decimal] = Field(default=None, ge=0)
    processing_fee: Optional[Decimal] = Field(default=None, ge=0)

    date_loan_disbursed: Optional[date] = None
    emi_start_date: Optional[date] = None

    vehicle_number: Optional[str] = None
    chassis_number: Optional[str] = None
    engine_number: Optional[str] = None
    model: Optional[str] = None
    type_of_vehicle: Optional[str] = None
    dealer_name: Optional[str] = None
    dealer_number: Optional[str] = None
    yw_board: Optional[str] = None
    hp_entry: Optional[HpEntry] = None
    fc_date: Optional[date] = None
    insurance_date: Optional[date] = None
    rto_work_pending: Optional[List[str]] = None
    doc_checklist: Optional[str] = None

    is_seized: Optional[bool] = None
    remarks: Optional[str] = None

    @field_validator("hp_entry", mode="before")
    def blank_hp_entry(cls, v):
        return v or None

    @field_validator("additional_mobile_numbers", "guarantor_mobile_numbers", "rto_work_pending", mode="before")
    def drop_blank_entries(cls, v):
        return _clean_list(v)

    def changes(self) -> dict:
        # explicit nulls on NOT NULL columns are treated as "not sent"
        data = self.model_dump(exclude_unset=True)
        not_null = {
            "loan_number", "customer_name", "mobile_number",
            "principal_amount", "annual_interest_rate", "tenure_months", "tenure_type", "is_seized",
            "additional_mobile_numbers", "guarantor_mobile_numbers", "rto_work_pending",
        }
        return {k: v for k, v in data.items() if not (k in not_null and v is None)}


class LoanOut(BaseModel):
    loan_id: int
    loan_number: str

    customer_name: str
    mobile_number: str
    alternate_mobile: Optional[str] = None
    address: Optional[str] = None
    own_rent: Optional[str] = None
    pan_number: Optional[str] = None
    aadhar_number: Optional[str] = None
    guarantor_name: Optional[str] = None
    additional_mobile_numbers: List[str] = []
    guarantor_mobile_numbers: List[str] = []

    principal_amount: float
    annual_interest_rate: float
    tenure_months: int
    tenure_type: str = "Monthly"
    monthly_emi: float
    total_interest_amount: float
    processing_fee_rate: Optional[float] = None
    processing_fee: Optional[float] = None

    date_loan_disbursed: Optional[date] = None
    emi_start_date: Optional[date] = None
    emi_end_date: Optional[date] = None

    vehicle_number: Optional[str] = None
    chassis_number: Optional[str] = None
    engine_number: Optional[str] = None
    model: Optional[str] = None
    type_of_vehicle: Optional[str] = None
    dealer_name: Optional[str] = None
    dealer_number: Optional[str] = None
    yw_board: Optional[str] = None
    hp_entry: Optional[str] = None
    fc_date: Optional[date] = None
    insurance_date: Optional[date] = None
    rto_work_pending: List[str] = []
    doc_checklist: Optional[str] = None

    status: str
    is_seized: bool
    remarks: Optional[str] = None

    created_on: Optional[datetime] = None
    updated_on: Optional[datetime] = None

    class Config:
        from_attributes = True


class PaginationOut(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int


class LoanPageOut(BaseModel):
    loans: List[LoanOut]
    pagination: PaginationOut


class EmiCalcIn(BaseModel):
    principal_amount: Optional[Decimal] = None
    annual_interest_rate: Optional[Decimal] = None
    tenure_months: Optional[Decimal] = None
    policy: EmiPolicy = EmiPolicy.FLAT

    class Config:
        use_enum_values = True


class EmiCalcOut(BaseModel):
    emi: float
    policy: Literal["flat", "amortizing"]
