import pytest

from pydantic import ValidationError

from models.context_models import LLMConfig


def test_merge_prefers_set_override_fields() -> None:
    defaults = LLMConfig(model="base", temperature=0.3, max_tokens=2000, timeout=60.0)

    merged = defaults.merge(LLMConfig(temperature=0.7))

    assert merged == LLMConfig(model="base", temperature=0.7, max_tokens=2000, timeout=60.0)
    assert defaults.temperature == 0.3


def test_merge_without_overrides_copies() -> None:
    defaults = LLMConfig(model="base")
    merged = defaults.merge(None)
    assert merged == defaults
    assert merged is not defaults


def test_request_kwargs_drop_unset_fields() -> None:
    assert LLMConfig(model="m", max_tokens=20).to_request_kwargs() == {"model": "m", "max_tokens": 20}
    assert LLMConfig(model="m", timeout=5.0).to_request_kwargs() == {"model": "m", "timeout": 5.0}


@pytest.mark.parametrize("field,value", [("temperature", 3.0), ("top_p", 0.0), ("max_tokens", 0), ("timeout", -1.0)])
def test_out_of_range_values_rejected(field: str, value: float) -> None:
    with pytest.raises(ValidationError):
        LLMConfig(**{field: value})
