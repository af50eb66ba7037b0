"""Interactive capability injected into OAuth flows by the host."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class Prompter(Protocol):
    """User interaction surface for login flows.

    ``open_url`` may raise on headless hosts; flows log the failure and go on,
    since the user can open the URL shown by ``note`` themselves.
    """

    async def open_url(self, url: str) -> None: ...

    async def note(self, message: str, title: str | None = None) -> None: ...

    async def prompt_text(self, label: str) -> str: ...
