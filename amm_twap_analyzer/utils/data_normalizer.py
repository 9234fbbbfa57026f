"""
Normalization of decoded pool and observation account data.

Pool and observation accounts usually arrive as decoded JSON where every field
is wrapped as ``{"type": "<idl type>", "data": <value>}`` and large integers
are encoded as strings. This module validates that input and turns it into
PoolSnapshot and Observation objects for the analysis core.
"""

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from amm_twap_analyzer.models.core import Observation, PoolSnapshot
from amm_twap_analyzer.utils.error_handling import (
    InsufficientDataError,
    InvalidInputError,
    MalformedNumericError,
)

logger = logging.getLogger(__name__)

REQUIRED_POOL_FIELDS = ('tick_current', 'mint_decimals_0', 'mint_decimals_1')
_INTEGER_PATTERN = re.compile(r'^[+-]?\d+$')


def unwrap_value(value: Any) -> Any:
    """Return the payload of a typed ``{"type": ..., "data": ...}`` wrapper, or the value itself."""
    if isinstance(value, dict) and 'data' in value:
        return value['data']
    return value


def parse_integer(value: Any, field_name: str = "value") -> int:
    """
    Parse an integer from a JSON number or decimal string.

    Strings are parsed into arbitrary-precision ints, so cumulative ticks
    beyond 2**53 stay exact.

    Raises:
        MalformedNumericError: If the value is not an integer
    """
    value = unwrap_value(value)

    if isinstance(value, bool):
        pass
    elif isinstance(value, int):
        return value
    elif isinstance(value, float) and value.is_integer():
        return int(value)
    elif isinstance(value, str) and _INTEGER_PATTERN.match(value.strip()):
        return int(value.strip())

    raise MalformedNumericError(
        f"Invalid integer for {field_name}: {value!r}",
        details={"field": field_name, "value": repr(value)},
    )


class _AccountRecord(BaseModel):
    """Shared behaviour for decoded account records."""

    model_config = {"extra": "ignore"}

    @model_validator(mode='before')
    @classmethod
    def unwrap_typed_fields(cls, data):
        if isinstance(data, dict):
            return {key: unwrap_value(value) for key, value in data.items()}
        return data


class PoolStateRecord(_AccountRecord):
    """Fields of a pool state account needed for TWAP analysis and display."""
    tick_current: int
    mint_decimals_0: int = Field(ge=0, le=255)
    mint_decimals_1: int = Field(ge=0, le=255)
    liquidity: Optional[int] = None
    token_mint_0: Optional[str] = None
    token_mint_1: Optional[str] = None

    @field_validator('tick_current', 'mint_decimals_0', 'mint_decimals_1', 'liquidity', mode='before')
    @classmethod
    def validate_integer_fields(cls, v, info):
        if v is None and info.field_name == 'liquidity':
            return None
        try:
            return parse_integer(v, info.field_name)
        except MalformedNumericError as e:
            raise ValueError(e.message)


class ObservationRecord(_AccountRecord):
    """One slot of an observation ring buffer."""
    block_timestamp: int = 0
    tick_cumulative: Optional[int] = None

    @field_validator('block_timestamp', 'tick_cumulative', mode='before')
    @classmethod
    def validate_integer_fields(cls, v, info):
        if v is None and info.field_name == 'tick_cumulative':
            return None
        try:
            return parse_integer(v, info.field_name)
        except MalformedNumericError as e:
            raise ValueError(e.message)


@dataclass
class PoolInfo:
    """Descriptive pool fields for display."""
    decimals0: int
    decimals1: int
    current_tick: int
    liquidity: Optional[int] = None
    token_mint_0: Optional[str] = None
    token_mint_1: Optional[str] = None


def _raise_for_validation_error(error: ValidationError, record_name: str) -> None:
    """Translate a pydantic ValidationError into the analyzer error taxonomy."""
    errors = error.errors()
    missing = [str(err['loc'][0]) for err in errors if err['type'] == 'missing' and err['loc']]
    if missing:
        raise InvalidInputError(
            f"Missing required field in {record_name}: {', '.join(missing)}",
            details={"missing_fields": missing},
        )

    first = errors[0]
    field_name = '.'.join(str(part) for part in first['loc']) or record_name
    message = f"Invalid {record_name} field {field_name}: {first['msg']}"
    if field_name in REQUIRED_POOL_FIELDS + ('liquidity', 'block_timestamp', 'tick_cumulative'):
        raise MalformedNumericError(message, details={"field": field_name})
    raise InvalidInputError(message, details={"field": field_name})


class AccountDataNormalizer:
    """
    Converts decoded account JSON into analysis inputs.

    Accepts both the typed-wrapper layout produced by IDL decoders and plain
    ``{"field": value}`` objects.
    """

    @staticmethod
    def parse_pool_record(raw: Any) -> PoolStateRecord:
        """
        Validate a raw pool state object.

        Raises:
            InvalidInputError: If it is not an object or lacks a required field
            MalformedNumericError: If a numeric field is not an integer
        """
        if not isinstance(raw, dict):
            raise InvalidInputError(f"PoolState must be a JSON object, got {type(raw).__name__}")

        for field_name in REQUIRED_POOL_FIELDS:
            value = raw.get(field_name)
            if value is None or (isinstance(value, dict) and 'data' not in value):
                raise InvalidInputError(
                    f"Missing required field in PoolState: {field_name}",
                    details={"missing_fields": [field_name]},
                )

        try:
            return PoolStateRecord.model_validate(raw)
        except ValidationError as e:
            _raise_for_validation_error(e, "PoolState")

    @staticmethod
    def parse_pool_state(raw: Any) -> PoolSnapshot:
        """Convert a raw pool state object into a PoolSnapshot."""
        record = AccountDataNormalizer.parse_pool_record(raw)
        return PoolSnapshot(
            current_tick=record.tick_current,
            decimals0=record.mint_decimals_0,
            decimals1=record.mint_decimals_1,
        )

    @staticmethod
    def extract_pool_info(raw: Any) -> PoolInfo:
        """Collect the descriptive pool fields shown alongside an analysis."""
        record = AccountDataNormalizer.parse_pool_record(raw)
        return PoolInfo(
            decimals0=record.mint_decimals_0,
            decimals1=record.mint_decimals_1,
            current_tick=record.tick_current,
            liquidity=record.liquidity,
            token_mint_0=record.token_mint_0,
            token_mint_1=record.token_mint_1,
        )

    @staticmethod
    def extract_observation_entries(raw: Any) -> List[Any]:
        """
        Locate the list of observation slots in an observation state.

        Supports ``{"observations": {"data": [...]}}``, ``{"observations": [...]}``
        and a bare list.
        """
        if isinstance(raw, list):
            return raw

        if isinstance(raw, dict):
            entries = unwrap_value(raw.get('observations'))
            if isinstance(entries, list):
                return entries

        raise InvalidInputError("Invalid ObservationState: missing observations.data array")

    @staticmethod
    def parse_observation_state(raw: Any) -> List[Observation]:
        """
        Convert a raw observation state into Observation objects.

        Entries without a ``block_timestamp`` are treated as empty slots
        (timestamp 0) and later discarded by the engine. Input order is kept.

        Raises:
            InvalidInputError: Wrong container shape, non-object entries, or a
                used slot without ``tick_cumulative``
            MalformedNumericError: A timestamp or cumulative tick is not an integer
        """
        entries = AccountDataNormalizer.extract_observation_entries(raw)

        observations = []
        empty_slots = 0
        for index, entry in enumerate(entries):
            if not isinstance(entry, dict):
                raise InvalidInputError(
                    f"Observation at index {index} must be an object, got {type(entry).__name__}"
                )

            try:
                record = ObservationRecord.model_validate(entry)
            except ValidationError as e:
                _raise_for_validation_error(e, f"Observation[{index}]")

            if record.block_timestamp <= 0:
                empty_slots += 1
                observations.append(Observation(timestamp=0, cumulative_tick=record.tick_cumulative or 0))
                continue

            if record.tick_cumulative is None:
                raise InvalidInputError(
                    f"Observation at index {index} has a timestamp but no tick_cumulative",
                    details={"index": index},
                )

            observations.append(
                Observation(timestamp=record.block_timestamp, cumulative_tick=record.tick_cumulative)
            )

        logger.debug(f"Parsed {len(observations)} observation slots ({empty_slots} empty)")
        return observations

    @staticmethod
    def validate_pool_state(raw: Any) -> bool:
        """Check that a pool state carries valid tick and decimals fields."""
        AccountDataNormalizer.parse_pool_state(raw)
        return True

    @staticmethod
    def validate_observation_state(raw: Any) -> bool:
        """
        Check that an observation state holds at least two used slots.

        Raises:
            InsufficientDataError: If fewer than two entries have a timestamp > 0
        """
        observations = AccountDataNormalizer.parse_observation_state(raw)
        valid_count = sum(1 for obs in observations if obs.is_valid)
        if valid_count < 2:
            raise InsufficientDataError(
                "Need at least 2 valid observations with timestamps > 0",
                details={"valid_observations": valid_count},
            )
        return True


def load_json_file(file_path: Union[str, Path]) -> Any:
    """
    Load JSON from a file.

    Raises:
        InvalidInputError: If the file is missing, unreadable or not valid JSON
    """
    path = Path(file_path)
    if not path.exists():
        raise InvalidInputError(f"File not found: {file_path}", details={"path": str(file_path)})

    try:
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise InvalidInputError(f"Error loading file {file_path}: {e}", details={"path": str(file_path)})


def load_json_source(source: str) -> Any:
    """Parse ``source`` as JSON text, falling back to treating it as a file path."""
    text = source.strip()
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return load_json_file(text)


def parse_json_text(text: str, label: str) -> Dict[str, Any]:
    """
    Parse inline JSON supplied on the command line.

    Raises:
        InvalidInputError: If the text is not valid JSON
    """
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise InvalidInputError(f"Error parsing {label} JSON: {e}")
