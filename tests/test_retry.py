"""Tests for retry with exponential backoff."""
import pytest
from unittest.mock import AsyncMock, patch

from nodebook.utils.retry import RetryPolicy, default_is_retryable, retry


@pytest.fixture
def mock_sleep():
    """Replace asyncio.sleep so backoff waits are recorded, not slept."""
    with patch("nodebook.utils.retry.asyncio.sleep", new_callable=AsyncMock) as sleep:
        yield sleep


def _delays(sleep: AsyncMock):
    return [call.args[0] for call in sleep.call_args_list]


@pytest.mark.parametrize("message,expected", [
    ("network error contacting http://localhost:11434", True),
    ("timeout contacting http://localhost:11434", True),
    ("read ECONNRESET", True),
    ("connect ETIMEDOUT", True),
    ("503, message='Service Unavailable'", True),
    ("Model llama3 not found", False),
    ("invalid input", False),
])
def test_default_is_retryable(message, expected):
    """Test classification of error messages."""
    assert default_is_retryable(Exception(message)) is expected


@pytest.mark.asyncio
async def test_retry_succeeds_after_transient_failures(mock_sleep):
    """Test two retryable failures followed by success."""
    operation = AsyncMock(side_effect=[
        Exception("network error"),
        Exception("timeout"),
        "ok",
    ])
    policy = RetryPolicy(initial_delay=1.0, backoff_factor=2.0, max_delay=10.0)

    result = await retry(operation, policy)

    assert result == "ok"
    assert operation.call_count == 3
    assert _delays(mock_sleep) == [1.0, 2.0]


@pytest.mark.asyncio
async def test_retry_delay_capped_at_max(mock_sleep):
    """Test that delays never exceed max_delay."""
    operation = AsyncMock(side_effect=[Exception("503")] * 4 + ["done"])
    policy = RetryPolicy(max_retries=4, initial_delay=4.0, backoff_factor=3.0, max_delay=10.0)

    assert await retry(operation, policy) == "done"
    assert _delays(mock_sleep) == [4.0, 10.0, 10.0, 10.0]


@pytest.mark.asyncio
async def test_retry_non_retryable_error_short_circuits(mock_sleep):
    """Test that a non-retryable error is raised after one attempt."""
    error = ValueError("invalid input")
    operation = AsyncMock(side_effect=error)

    with pytest.raises(ValueError) as exc_info:
        await retry(operation)

    assert exc_info.value is error
    assert operation.call_count == 1
    mock_sleep.assert_not_called()


@pytest.mark.asyncio
async def test_retry_exhausted_raises_last_error(mock_sleep):
    """Test that the last error surfaces once retries run out."""
    errors = [Exception("502 bad gateway"), Exception("503"), Exception("504 timeout")]
    operation = AsyncMock(side_effect=errors)

    with pytest.raises(Exception) as exc_info:
        await retry(operation, RetryPolicy(max_retries=2))

    assert exc_info.value is errors[-1]
    assert operation.call_count == 3
    assert len(mock_sleep.call_args_list) == 2


@pytest.mark.asyncio
async def test_retry_zero_retries(mock_sleep):
    """Test that max_retries=0 means a single attempt."""
    operation = AsyncMock(side_effect=Exception("network down"))

    with pytest.raises(Exception):
        await retry(operation, RetryPolicy(max_retries=0))

    assert operation.call_count == 1
    mock_sleep.assert_not_called()


@pytest.mark.asyncio
async def test_retry_custom_predicate(mock_sleep):
    """Test a custom retryability check."""
    operation = AsyncMock(side_effect=[KeyError("flaky"), 42])
    policy = RetryPolicy(is_retryable=lambda e: isinstance(e, KeyError))

    assert await retry(operation, policy) == 42
    assert operation.call_count == 2


@pytest.mark.asyncio
async def test_retry_initial_delay_capped(mock_sleep):
    """Test that an initial delay above max_delay is capped."""
    operation = AsyncMock(side_effect=[Exception("timeout"), "ok"])
    policy = RetryPolicy(initial_delay=30.0, max_delay=5.0)

    await retry(operation, policy)

    assert _delays(mock_sleep) == [5.0]
