from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ErrorCode(str, Enum):
    """Typed row error classifications."""
    first_name_required = "FirstNameIsRequired"
    last_name_required = "LastNameIsRequired"
    gender_required = "GenderIsRequired"
    email_required = "EmailIsRequired"
    adress1_required = "Adress1IsRequired"
    adress2_required = "Adress2IsRequired"
    city_required = "CityIsRequired"
    state_required = "StateIsRequired"
    zip_code_required = "ZipCodeIsRequired"
    feedback_required = "FeedbackIsRequired"


# message templates shown next to each code in the error report
ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.first_name_required: "The First Name cannot be empty.",
    ErrorCode.last_name_required: "The Last Name cannot be empty.",
    ErrorCode.gender_required: "The Gender cannot be empty.",
    ErrorCode.email_required: "The Email cannot be empty.",
    ErrorCode.adress1_required: "The Adress 1 cannot be empty.",
    ErrorCode.adress2_required: "The Adress 2 cannot be empty.",
    ErrorCode.city_required: "The City cannot be empty.",
    ErrorCode.state_required: "The State cannot be empty.",
    ErrorCode.zip_code_required: "The Zip Code cannot be empty.",
    ErrorCode.feedback_required: "The Feedback cannot be empty.",
}


class Behavior(str, Enum):
    """Run-level import mode."""
    delete = "delete"
    replace = "replace"       # delete the known ids, then insert
    append = "append"         # insert only, overwrite on conflicting id


class ValidationStrategy(str, Enum):
    """How the error aggregator reacts once errors pile up."""
    stop_on_errors = "stop_on_errors"
    skip_errors = "skip_errors"


def parse_behavior(value: str) -> Behavior:
    """Resolve a CLI/config string into a `Behavior`. Raises `ValueError` on anything else."""
    try:
        return Behavior(value.strip().lower())
    except ValueError:
        raise ValueError(f"Unknown behavior: {value!r} (expected one of {[b.value for b in Behavior]})")


@dataclass(frozen=True, slots=True)
class RowError:
    """One error recorded against a row."""
    row_number: int         # 1-based, header not counted
    code: ErrorCode
    message: str
