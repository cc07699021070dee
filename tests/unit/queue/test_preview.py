"""Test queued request previews."""

import pytest

from ai_resilience.models.queue import RequestType
from ai_resilience.queue.preview import create_preview


class TestCreatePreview:
    """Test preview text generation."""

    def test_should_quote_reply_message(self):
        """Test reply preview quotes the message."""
        preview = create_preview(RequestType.REPLY, {"message": "See you tonight?"})

        assert preview == 'Reply to: "See you tonight?..."'

    def test_should_truncate_long_message(self):
        """Test reply preview keeps the first 30 characters."""
        preview = create_preview(RequestType.REPLY, {"message": "x" * 80})

        assert preview == f'Reply to: "{"x" * 30}..."'

    def test_should_fall_back_for_reply_without_message(self):
        """Test reply preview without a message."""
        assert create_preview(RequestType.REPLY, {}) == "Generate reply"

    @pytest.mark.parametrize(
        "request_type,expected",
        [
            (RequestType.SCREENSHOT, "Analyze screenshot"),
            (RequestType.STARTER, "Conversation starter"),
            (RequestType.RED_FLAG, "Red flag check"),
        ],
    )
    def test_should_label_other_types(self, request_type, expected):
        """Test fixed labels ignore the payload."""
        assert create_preview(request_type, {"message": "ignored"}) == expected
