from marshmallow import EXCLUDE, pre_load, validate

from board.extensions.extensions import ma
from board.models.post_model import format_timestamp


TITLE_MAX_LENGTH = 100
AUTHOR_MAX_LENGTH = 50
CONTENT_MAX_LENGTH = 140


def _length_rules(label, max_length):
    return [
        validate.Length(min=1, error=f"{label} is required"),
        validate.Length(
            max=max_length,
            error=f"{label} must be {max_length} characters or fewer",
        ),
    ]


def _required_messages(label):
    return {
        "required": f"{label} is required",
        "null": f"{label} is required",
        "invalid": f"{label} must be a string",
    }


class _PostInputSchema(ma.Schema):
    class Meta:
        unknown = EXCLUDE

    @pre_load
    def strip_strings(self, data, **kwargs):
        if not isinstance(data, dict):
            return data
        return {
            key: value.strip() if isinstance(value, str) else value
            for key, value in data.items()
        }


class PostCreateSchema(_PostInputSchema):
    title = ma.Str(
        required=True,
        validate=_length_rules("Title", TITLE_MAX_LENGTH),
        error_messages=_required_messages("Title"),
    )
    author = ma.Str(
        required=True,
        validate=_length_rules("Author", AUTHOR_MAX_LENGTH),
        error_messages=_required_messages("Author"),
    )
    content = ma.Str(
        required=True,
        validate=_length_rules("Content", CONTENT_MAX_LENGTH),
        error_messages=_required_messages("Content"),
    )
    owner_id = ma.Str(data_key="ownerId", allow_none=True, load_default=None)


class PostUpdateSchema(_PostInputSchema):
    """Partial update; ownership and timestamps are never client-editable."""

    title = ma.Str(
        validate=_length_rules("Title", TITLE_MAX_LENGTH),
        error_messages=_required_messages("Title"),
    )
    author = ma.Str(
        validate=_length_rules("Author", AUTHOR_MAX_LENGTH),
        error_messages=_required_messages("Author"),
    )
    content = ma.Str(
        validate=_length_rules("Content", CONTENT_MAX_LENGTH),
        error_messages=_required_messages("Content"),
    )


class PostResponseSchema(ma.Schema):
    id = ma.Str()
    title = ma.Str()
    author = ma.Str()
    content = ma.Str()
    owner_id = ma.Str(data_key="ownerId", allow_none=True)
    created_at = ma.Method("dump_created_at", data_key="createdAt")
    updated_at = ma.Method("dump_updated_at", data_key="updatedAt")

    def dump_created_at(self, post):
        return format_timestamp(post.created_at)

    def dump_updated_at(self, post):
        return format_timestamp(post.updated_at)


post_create_schema = PostCreateSchema()
post_update_schema = PostUpdateSchema()
post_response_schema = PostResponseSchema()
posts_response_schema = PostResponseSchema(many=True)
