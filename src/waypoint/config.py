"""Router configuration.

RouterConfig is a frozen dataclass: immutable after creation, shared by
every dispatch of the router it configures.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class RouterConfig:
    """Router configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = RouterConfig(default_timeout=30.0)
        router = Router(config=config)
    """

    # Timeout guard (seconds). 0 disables the guard for routes without
    # an explicit timeout. Matches the conventional socket idle ceiling.
    default_timeout: float = 120.0

    # Methods whose handlers wait for the request body
    body_methods: frozenset[str] = field(default_factory=lambda: frozenset({"POST", "PUT"}))

    # Content types decoded into a field map instead of raw bytes
    structured_types: str = r"urlencoded|json|multipart"

    # Synthesized responses
    not_found_status: int = 404
    not_found_text: str = "No matching route or failed route"
    timeout_status: int = 500
    timeout_text: str = "Request timed out"
    timeout_content_type: str = "text/html"

    # Include the evaluator traceback in the 404 body
    expose_errors: bool = True
