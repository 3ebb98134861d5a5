"""
Tests for the fail-soft result boundary.
"""

import pytest
from pydantic import BaseModel

from handover_engine.errors import InternalError, NotFoundError, ValidationError
from handover_engine.results import ActionResult, fail_soft


class _Payload(BaseModel):
    event_id: str


class TestActionResult:
    def test_ok_to_dict_dumps_models(self):
        result = ActionResult.ok(_Payload(event_id="e1"))

        assert result.success is True
        assert result.error_code is None
        assert result.to_dict() == {"success": True, "data": {"event_id": "e1"}}

    def test_ok_to_dict_dumps_lists_of_models(self):
        result = ActionResult.ok([_Payload(event_id="e1"), _Payload(event_id="e2")])

        assert result.to_dict()["data"] == [{"event_id": "e1"}, {"event_id": "e2"}]

    def test_fail_to_dict(self):
        result = ActionResult.fail(NotFoundError("Deal not found."))

        assert result.to_dict() == {
            "success": False,
            "error": "Deal not found.",
            "error_code": "not_found",
        }

    def test_unwrap(self):
        assert ActionResult.ok(3).unwrap() == 3
        with pytest.raises(ValidationError):
            ActionResult.fail(ValidationError("bad")).unwrap()


class TestFailSoft:
    @pytest.mark.asyncio
    async def test_success(self):
        @fail_soft("op")
        async def op(x):
            return x * 2

        result = await op(21)

        assert result.success is True
        assert result.data == 42

    @pytest.mark.asyncio
    async def test_engine_error_becomes_failure(self):
        @fail_soft("op")
        async def op():
            raise ValidationError("Invalid crew slot.", context={"index": 99})

        result = await op()

        assert result.success is False
        assert result.error_code == "validation"
        assert result.error.context == {"index": 99}

    @pytest.mark.asyncio
    async def test_unexpected_error_is_wrapped(self):
        @fail_soft("op")
        async def op():
            raise KeyError("missing")

        result = await op()

        assert result.success is False
        assert isinstance(result.error, InternalError)
        assert result.error_code == "internal"
        assert result.error.context["error_type"] == "KeyError"

    @pytest.mark.asyncio
    async def test_works_on_methods(self):
        class Service:
            factor = 3

            @fail_soft("service.op")
            async def op(self, x):
                return x * self.factor

        result = await Service().op(2)

        assert result.data == 6
