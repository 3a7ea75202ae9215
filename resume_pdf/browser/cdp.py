"""Chrome DevTools Protocol (CDP) client."""

import asyncio
import base64
import json
from typing import Any

import httpx
import websockets
from websockets import ClientConnection

from resume_pdf.config import settings
from resume_pdf.utils.logging import get_logger

logger = get_logger(__name__)


class CDPError(Exception):
    """CDP protocol error."""

    pass


class CDPTimeoutError(CDPError):
    """A command response or event did not arrive in time."""

    pass


class CDPNavigationError(CDPError):
    """The browser reported a network error while navigating."""

    def __init__(self, url: str, error_text: str) -> None:
        self.url = url
        self.error_text = error_text
        super().__init__(f"Navigation to {url} failed: {error_text}")


class CDPClient:
    """Client for a single Chrome DevTools page target (tab)."""

    def __init__(self, devtools_port: int, command_timeout: float | None = None) -> None:
        self.devtools_port = devtools_port
        self.command_timeout = (
            command_timeout if command_timeout is not None else settings.command_timeout_seconds
        )
        self.target_id: str | None = None
        self._ws_url: str | None = None
        self._ws: ClientConnection | None = None
        self._message_id = 0
        self._pending_responses: dict[int, asyncio.Future[Any]] = {}
        self._event_waiters: dict[str, list[asyncio.Future[dict[str, Any]]]] = {}
        self._receive_task: asyncio.Task[None] | None = None

    @property
    def base_url(self) -> str:
        """Base URL for DevTools HTTP endpoints."""
        return f"http://127.0.0.1:{self.devtools_port}"

    async def open_tab(self, url: str = "about:blank") -> str:
        """
        Open a new tab through the DevTools HTTP endpoint.

        Args:
            url: Initial URL for the new tab

        Returns:
            Target ID of the tab
        """
        async with httpx.AsyncClient(timeout=self.command_timeout) as client:
            try:
                response = await client.put(f"{self.base_url}/json/new?{url}")
                response.raise_for_status()
            except httpx.HTTPError as e:
                raise CDPError(f"Failed to open tab: {e}") from e

        target = response.json()
        self.target_id = target.get("id")
        self._ws_url = target.get("webSocketDebuggerUrl")
        if not self.target_id or not self._ws_url:
            raise CDPError(f"DevTools returned an unusable target: {target}")

        logger.debug("Opened tab", target_id=self.target_id)
        return self.target_id

    async def close_tab(self) -> None:
        """Close the tab opened by :meth:`open_tab`."""
        if not self.target_id:
            return

        async with httpx.AsyncClient(timeout=self.command_timeout) as client:
            try:
                await client.get(f"{self.base_url}/json/close/{self.target_id}")
            except httpx.HTTPError as e:
                raise CDPError(f"Failed to close tab: {e}") from e

        logger.debug("Closed tab", target_id=self.target_id)
        self.target_id = None
        self._ws_url = None

    async def connect(self) -> None:
        """Connect to the tab's DevTools websocket."""
        if not self._ws_url:
            raise CDPError("No tab to connect to, call open_tab() first")

        logger.debug("Connecting to page WebSocket", url=self._ws_url)

        try:
            self._ws = await websockets.connect(self._ws_url, max_size=100 * 1024 * 1024)
        except (OSError, websockets.WebSocketException) as e:
            raise CDPError(f"Failed to connect to DevTools: {e}") from e

        # Start message receiver
        self._receive_task = asyncio.create_task(self._receive_messages())

        logger.info("CDP connected", port=self.devtools_port, target_id=self.target_id)

    async def disconnect(self) -> None:
        """Disconnect from Chrome DevTools."""
        if self._receive_task:
            self._receive_task.cancel()
            try:
                await self._receive_task
            except asyncio.CancelledError:
                pass
            self._receive_task = None

        if self._ws:
            await self._ws.close()
            self._ws = None

        logger.debug("CDP disconnected")

    def _fail_waiters(self, error: CDPError) -> None:
        for future in self._pending_responses.values():
            if not future.done():
                future.set_exception(error)
        self._pending_responses.clear()

        for waiters in self._event_waiters.values():
            for future in waiters:
                if not future.done():
                    future.set_exception(error)
        self._event_waiters.clear()

    def _dispatch(self, data: dict[str, Any]) -> None:
        """Route one decoded message to its command future or event waiters."""
        # Handle response to our command
        if "id" in data:
            future = self._pending_responses.pop(data["id"], None)
            if future is None or future.done():
                return
            if "error" in data:
                error_msg = data["error"].get("message", "Unknown error")
                future.set_exception(CDPError(error_msg))
            else:
                future.set_result(data.get("result", {}))

        # Handle events
        elif "method" in data:
            method = data["method"]
            logger.debug("CDP event", method=method)
            for waiter in self._event_waiters.pop(method, []):
                if not waiter.done():
                    waiter.set_result(data.get("params", {}))

    async def _receive_messages(self) -> None:
        """Background task to receive WebSocket messages."""
        if not self._ws:
            return

        try:
            async for message in self._ws:
                self._dispatch(json.loads(message))
        except websockets.ConnectionClosed:
            logger.debug("WebSocket connection closed")
        except Exception as e:
            logger.error("Error receiving CDP messages", error=str(e))
        finally:
            self._fail_waiters(CDPError("DevTools connection closed"))

    async def send(self, method: str, params: dict[str, Any] | None = None) -> Any:
        """
        Send a CDP command and wait for response.

        Args:
            method: CDP method name (e.g., "Page.navigate")
            params: Method parameters

        Returns:
            Command result
        """
        if not self._ws:
            raise CDPError("Not connected to DevTools")
        if self._receive_task is None or self._receive_task.done():
            raise CDPError(f"DevTools connection closed, cannot send {method}")

        self._message_id += 1
        msg_id = self._message_id

        message = {
            "id": msg_id,
            "method": method,
            "params": params or {},
        }

        # Create future for response
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._pending_responses[msg_id] = future

        # Send message
        try:
            await self._ws.send(json.dumps(message))
        except websockets.WebSocketException as e:
            self._pending_responses.pop(msg_id, None)
            raise CDPError(f"DevTools connection lost sending {method}: {e}") from e
        logger.debug("CDP command sent", method=method, id=msg_id)

        # Wait for response
        try:
            return await asyncio.wait_for(future, timeout=self.command_timeout)
        except TimeoutError as e:
            self._pending_responses.pop(msg_id, None)
            raise CDPTimeoutError(f"Timeout waiting for response to {method}") from e

    def expect_event(self, method: str) -> asyncio.Future[dict[str, Any]]:
        """
        Register interest in the next occurrence of an event.

        Register before issuing the command that triggers the event,
        otherwise a fast event can arrive before anyone is waiting.
        """
        future: asyncio.Future[dict[str, Any]] = asyncio.get_running_loop().create_future()
        self._event_waiters.setdefault(method, []).append(future)
        return future

    async def wait_for_event(
        self,
        method: str,
        timeout: float,
        future: asyncio.Future[dict[str, Any]] | None = None,
    ) -> dict[str, Any]:
        """
        Wait for an event.

        Args:
            method: CDP event name (e.g., "Page.loadEventFired")
            timeout: Maximum wait time in seconds
            future: Waiter from :meth:`expect_event`, a new one is registered if omitted

        Returns:
            Event parameters
        """
        if future is None:
            future = self.expect_event(method)

        try:
            return await asyncio.wait_for(future, timeout=timeout)
        except TimeoutError as e:
            raise CDPTimeoutError(f"Timeout waiting for {method} after {timeout}s") from e

    async def navigate(self, url: str, timeout: float = 30.0) -> dict[str, Any]:
        """
        Navigate to a URL and wait for the page load event.

        Args:
            url: URL to navigate to
            timeout: Maximum wait time for the load event in seconds

        Returns:
            Navigation result

        Raises:
            CDPNavigationError: If the browser reports a network error
            CDPTimeoutError: If the page does not load in time
        """
        # Enable Page events
        await self.send("Page.enable")
        loaded = self.expect_event("Page.loadEventFired")

        logger.info("Navigating to URL", url=url)
        try:
            result: dict[str, Any] = await self.send("Page.navigate", {"url": url})
        except BaseException:
            loaded.cancel()
            raise

        error_text = result.get("errorText")
        if error_text:
            loaded.cancel()
            raise CDPNavigationError(url, error_text)

        await self.wait_for_event("Page.loadEventFired", timeout, future=loaded)
        logger.debug("Page loaded", url=url)
        return result

    async def print_to_pdf(self, params: dict[str, Any]) -> bytes:
        """
        Print the current page to PDF.

        Args:
            params: ``Page.printToPDF`` parameters

        Returns:
            PDF document as bytes
        """
        result = await self.send("Page.printToPDF", params)
        data = result.get("data")
        if not data:
            raise CDPError("Page.printToPDF returned no data")

        pdf = base64.b64decode(data)
        logger.debug("Printed page to PDF", size_bytes=len(pdf))
        return pdf
