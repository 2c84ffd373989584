"""Stream name utilities for Message DB.

Stream names follow the format ``{category}[-{id}][+{type}]``:

- The category groups all streams of one kind of entity. It may carry
  category types separated by a colon (``account:command``).
- The id follows the first dash. Every later dash belongs to the id, so
  compound ids such as UUIDs are kept whole.
- The optional type suffix follows the first plus sign. It cannot contain a
  dash, which the store would read as the id boundary.

A stream name without an id is a category stream name.

Example:
    >>> stream_name = StreamName.parse("cart-123+shipping")
    >>> stream_name.category, stream_name.id, stream_name.type
    ('cart', '123', 'shipping')
    >>> str(stream_name)
    'cart-123+shipping'
    >>> StreamName.parse("cart").is_category_stream()
    True

The module level functions ``get_category``, ``get_id``, ``get_cardinal_id`` and
``is_category`` reproduce the store's ``category``, ``id``, ``cardinal_id`` and
``is_category`` server functions on raw text.
"""

import uuid
from dataclasses import dataclass

from messagedb_client.errors import InvalidCategory, MalformedStreamName

ID_SEPARATOR = "-"
TYPE_SEPARATOR = "+"
CATEGORY_TYPE_SEPARATOR = ":"


@dataclass(frozen=True)
class StreamName:
    """A parsed stream name.

    Attributes:
        category: The part before the first dash (e.g. "cart" or "account:command")
        id: The part after the first dash, or None for a category stream
        type: The part after the first plus sign, if any
    """

    category: str
    id: str | None = None
    type: str | None = None

    def __post_init__(self) -> None:
        """Validate the components.

        Raises:
            InvalidCategory: If the category is empty or contains '-' or '+'
            MalformedStreamName: If id or type is empty, the id contains '+'
                or the type contains '-'
        """
        if not self.category:
            raise InvalidCategory("category cannot be empty")
        if ID_SEPARATOR in self.category:
            raise InvalidCategory(
                f"category cannot contain '{ID_SEPARATOR}' character: '{self.category}'"
            )
        if TYPE_SEPARATOR in self.category:
            raise InvalidCategory(
                f"category cannot contain '{TYPE_SEPARATOR}' character: '{self.category}'"
            )
        if self.id is not None:
            if not self.id:
                raise MalformedStreamName("id cannot be empty")
            if TYPE_SEPARATOR in self.id:
                raise MalformedStreamName(
                    f"id cannot contain '{TYPE_SEPARATOR}' character: '{self.id}'"
                )
        if self.type is not None:
            if not self.type:
                raise MalformedStreamName("type cannot be empty")
            # The store takes the first dash anywhere in the name as the id boundary
            if ID_SEPARATOR in self.type:
                raise MalformedStreamName(
                    f"type cannot contain '{ID_SEPARATOR}' character: '{self.type}'"
                )

    @classmethod
    def build(
        cls, category: str, id: str | None = None, type: str | None = None
    ) -> "StreamName":
        """Build a stream name from its components.

        Args:
            category: Category of the stream (must not contain '-' or '+')
            id: Optional entity id (may contain '-')
            type: Optional type suffix

        Returns:
            The validated StreamName

        Raises:
            InvalidCategory: If the category is empty or contains '-' or '+'
            MalformedStreamName: If the id or type is invalid

        Example:
            >>> str(StreamName.build("account:command", "123"))
            'account:command-123'
        """
        return cls(category=category, id=id, type=type)

    @classmethod
    def parse(cls, raw: str) -> "StreamName":
        """Parse a stream name string into its components.

        Args:
            raw: A stream name such as "cart", "cart-123" or "cart-123+shipping"

        Returns:
            The parsed StreamName

        Raises:
            MalformedStreamName: If the text is empty, any segment is empty or
                a dash follows the '+' of the type suffix
        """
        if not raw:
            raise MalformedStreamName("stream name cannot be empty")

        head, type_sep, type_ = raw.partition(TYPE_SEPARATOR)
        category_, id_sep, id_ = head.partition(ID_SEPARATOR)

        if not category_:
            raise MalformedStreamName(f"Invalid stream name '{raw}': category is empty")
        if id_sep and not id_:
            raise MalformedStreamName(f"Invalid stream name '{raw}': id is empty")
        if type_sep and not type_:
            raise MalformedStreamName(f"Invalid stream name '{raw}': type is empty")
        if ID_SEPARATOR in type_:
            raise MalformedStreamName(
                f"Invalid stream name '{raw}': type contains '{ID_SEPARATOR}'"
            )

        return cls(category=category_, id=id_ or None, type=type_ or None)

    def render(self) -> str:
        """Render the canonical text form accepted by parse()."""
        rendered = self.category
        if self.id is not None:
            rendered += ID_SEPARATOR + self.id
        if self.type is not None:
            rendered += TYPE_SEPARATOR + self.type
        return rendered

    def is_category_stream(self) -> bool:
        """Return True if this stream name has no id."""
        return self.id is None

    @property
    def cardinal_id(self) -> str | None:
        """The id used by the store for consumer group partitioning.

        Ids cannot contain '+', so the store's cardinal id of the rendered
        name is the id itself.
        """
        return self.id

    @property
    def entity_name(self) -> str:
        """The category without its category types."""
        return self.category.split(CATEGORY_TYPE_SEPARATOR, 1)[0]

    @property
    def category_types(self) -> list[str]:
        """Category types following the colon, e.g. ["command"] for "account:command"."""
        _, sep, types = self.category.partition(CATEGORY_TYPE_SEPARATOR)
        if not sep:
            return []
        return types.split(CATEGORY_TYPE_SEPARATOR)

    def __str__(self) -> str:
        return self.render()


def generate_message_id() -> str:
    """Generate a unique message identifier using UUID4.

    Returns:
        A UUID4 string in standard dashed format
    """
    return str(uuid.uuid4())


def get_category(stream_name: str) -> str:
    """Return the category part of a raw stream name, like ``message_store.category``."""
    return stream_name.split(ID_SEPARATOR, 1)[0]


def get_id(stream_name: str) -> str | None:
    """Return the id part of a raw stream name, like ``message_store.id``."""
    _, sep, id_ = stream_name.partition(ID_SEPARATOR)
    if not sep:
        return None
    return id_


def get_cardinal_id(stream_name: str) -> str | None:
    """Return the first '+' segment of the id, like ``message_store.cardinal_id``."""
    id_ = get_id(stream_name)
    if id_ is None:
        return None
    return id_.split(TYPE_SEPARATOR, 1)[0]


def is_category(stream_name: str) -> bool:
    """Return True if the raw stream name has no id, like ``message_store.is_category``."""
    return ID_SEPARATOR not in stream_name
