"""Pydantic schemas for API."""
from datetime import date, date as date_type, datetime
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field, model_validator
from pydantic.alias_generators import to_camel

ShiftType = Literal["day", "night"]


class WorkPatternIn(BaseModel):
    works_dow: List[int] = []
    offs_dow: List[int] = []
    works_dow_mode: Literal["hard", "soft"] = "hard"
    weekend_rotation: Literal["none", "every_other"] = "none"
    weekend_anchor_date: Optional[date] = None
    shift_preference: Literal["day", "night", "either"] = "either"


class WorkPatternOut(WorkPatternIn):
    id: int
    therapist_id: int

    class Config:
        from_attributes = True


class TherapistBase(BaseModel):
    full_name: str
    shift_type: Literal["day", "night", "either"] = "day"
    employment_type: Literal["full_time", "part_time", "prn"] = "full_time"
    is_lead_eligible: bool = False
    max_work_days_per_week: Optional[int] = None
    is_active: bool = True
    on_fmla: bool = False
    fmla_return_date: Optional[date] = None


class TherapistCreate(TherapistBase):
    pattern: Optional[WorkPatternIn] = None


class TherapistUpdate(BaseModel):
    full_name: Optional[str] = None
    shift_type: Optional[Literal["day", "night", "either"]] = None
    employment_type: Optional[Literal["full_time", "part_time", "prn"]] = None
    is_lead_eligible: Optional[bool] = None
    max_work_days_per_week: Optional[int] = None
    is_active: Optional[bool] = None
    on_fmla: Optional[bool] = None
    fmla_return_date: Optional[date] = None


class TherapistOut(TherapistBase):
    id: int
    pattern: Optional[WorkPatternOut] = None

    class Config:
        from_attributes = True


class CycleCreate(BaseModel):
    label: str
    start_date: date
    end_date: date

    @model_validator(mode="after")
    def _check_range(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class CycleOut(BaseModel):
    id: int
    label: str
    start_date: date
    end_date: date
    published: bool

    class Config:
        from_attributes = True


class OverrideCreate(BaseModel):
    cycle_id: int
    therapist_id: int
    date: date
    shift_type: Literal["day", "night", "both"] = "both"
    override_type: Literal["force_off", "force_on"]
    note: Optional[str] = None
    source: Literal["manager", "therapist"] = "manager"


class OverrideOut(OverrideCreate):
    id: int
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ShiftOut(BaseModel):
    id: int
    cycle_id: int
    user_id: int
    therapist_name: Optional[str] = None
    date: date
    shift_type: str
    role: str
    status: str
    assignment_status: str
    status_note: Optional[str] = None
    left_early_time: Optional[str] = None
    availability_override: bool = False
    availability_override_reason: Optional[str] = None
    availability_override_by: Optional[str] = None

    class Config:
        from_attributes = True


class ShiftCreate(BaseModel):
    """Manual add from the cycle grid."""
    user_id: int
    date: date
    shift_type: ShiftType
    role: Literal["lead", "staff"] = "staff"
    status: Literal["scheduled", "on_call", "sick", "called_off"] = "scheduled"
    override_weekly_rules: bool = False


class PublishRequest(BaseModel):
    override_weekly_rules: bool = Field(False, alias="overrideWeeklyRules")

    class Config:
        populate_by_name = True


# Drag/drop protocol: camelCase JSON, discriminated on "action"

class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True


class AssignAction(CamelModel):
    action: Literal["assign"]
    cycle_id: int
    user_id: int
    shift_type: ShiftType
    date: date
    override_weekly_rules: bool = False
    availability_override: bool = False
    availability_override_reason: Optional[str] = None


class MoveAction(CamelModel):
    action: Literal["move"]
    cycle_id: int
    shift_id: int
    target_date: date
    target_shift_type: ShiftType
    override_weekly_rules: bool = False
    availability_override: bool = False
    availability_override_reason: Optional[str] = None


class RemoveAction(CamelModel):
    """Identify the row either by shift_id or by (user_id, date, shift_type)."""
    action: Literal["remove"]
    cycle_id: int
    shift_id: Optional[int] = None
    user_id: Optional[int] = None
    date: Optional[date_type] = None
    shift_type: Optional[ShiftType] = None

    @model_validator(mode="after")
    def _check_target(self):
        if self.shift_id is None and None in (self.user_id, self.date, self.shift_type):
            raise ValueError("remove needs shiftId or userId, date and shiftType")
        return self


class SetLeadAction(CamelModel):
    action: Literal["set_lead"]
    cycle_id: int
    therapist_id: int
    date: date
    shift_type: ShiftType
    override_weekly_rules: bool = False
    availability_override: bool = False
    availability_override_reason: Optional[str] = None
    replace_existing_lead: bool = False


DragDropAction = Annotated[
    Union[AssignAction, MoveAction, RemoveAction, SetLeadAction],
    Field(discriminator="action"),
]


class StatusUpdateRequest(CamelModel):
    assignment_id: int
    status: Literal["scheduled", "call_in", "cancelled", "on_call", "left_early"]
    note: Optional[str] = None
    left_early_time: Optional[str] = None
