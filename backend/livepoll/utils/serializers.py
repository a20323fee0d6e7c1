from typing import Any, Dict

from pydantic import ValidationError

from livepoll.core.errors import PollAppError
from livepoll.models.poll import Poll


def poll_from_document(doc: Dict[str, Any]) -> Poll:
    try:
        return Poll.model_validate(doc)
    except ValidationError as e:
        raise PollAppError.serialization(f"Stored poll is malformed: {e.error_count()} invalid field(s)")


def poll_to_document(poll: Poll) -> Dict[str, Any]:
    # datetimes stay native so they are stored as BSON dates
    return poll.model_dump(by_alias=True)
