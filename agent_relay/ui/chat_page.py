"""NiceGUI chat interface driven by the run stream consumer."""

import os
from datetime import datetime

from nicegui import ui

from agent_relay.config import get_settings
from agent_relay.errors import StreamError, StreamTimedOut
from agent_relay.streaming.consumer import ChatMessage
from agent_relay.ui.session import ChatSession

API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:8000")

QUICK_PROMPTS = [
    ("FAQ", "What common issues can you help with?"),
    ("Get Help", "How do I get started?"),
]


@ui.page("/")
async def chat_page() -> None:
    """Main chat page."""

    def on_idle_teardown() -> None:
        status_label.set_text("Chat ended after inactivity. Start a new chat.")
        refresh_controls()

    session = ChatSession(get_settings(), API_BASE_URL, on_idle_teardown=on_idle_teardown)

    messages_container: ui.column
    input_field: ui.textarea
    send_btn: ui.button
    status_label: ui.label
    prompt_buttons: list[ui.button] = []

    def render_message(msg: ChatMessage) -> None:
        is_user = msg.role == "user"
        align = "justify-end" if is_user else "justify-start"
        time_text = datetime.fromtimestamp(msg.timestamp).strftime("%I:%M %p")
        with ui.row().classes(f"w-full {align}"):
            with ui.column().classes("max-w-[70%] gap-1"):
                if is_user:
                    ui.label(msg.content).classes("whitespace-pre-wrap text-sm")
                else:
                    ui.markdown(msg.content).classes("text-sm")
                ui.label(time_text).classes("text-[10px] text-gray-400")

    def refresh_messages() -> None:
        messages_container.clear()
        with messages_container:
            if not session.messages:
                ui.label("Start a conversation").classes("text-lg text-gray-400")
            for msg in session.messages:
                render_message(msg)

    def refresh_status() -> None:
        if session.threads.ready:
            status_label.set_text(f"Thread {session.threads.thread_id[:12]}")
        else:
            status_label.set_text("Initializing chat...")
        refresh_controls()

    def set_controls(enabled: bool) -> None:
        for element in (input_field, send_btn, *prompt_buttons):
            element.set_enabled(enabled)

    def refresh_controls() -> None:
        set_controls(session.can_send)

    async def send_message(text: str | None = None) -> None:
        text = (text if text is not None else input_field.value).strip()
        if not text or not session.can_send:
            return

        input_field.value = ""
        set_controls(False)
        session.threads.touch()
        try:
            await session.consumer.send(
                text, session.threads.thread_id, on_token=lambda _: refresh_messages()
            )
        except StreamTimedOut:
            ui.notify("Request timed out. Please try again.", type="warning")
        except StreamError as e:
            ui.notify(e.message, type="negative")
        finally:
            refresh_controls()
            refresh_messages()

    async def new_chat() -> None:
        session.consumer.abort()
        session.consumer.transcript.clear()
        refresh_messages()
        status_label.set_text("Initializing chat...")
        refresh_controls()
        await session.threads.new_chat()
        refresh_status()

    # === UI Layout ===
    with ui.column().classes("w-full max-w-3xl mx-auto p-4 gap-4"):
        with ui.row().classes("w-full items-center justify-between"):
            ui.label("Agent Assistant").classes("text-lg font-semibold")
            with ui.row().classes("items-center gap-3"):
                status_label = ui.label("Initializing chat...").classes("text-xs font-mono")
                ui.button(icon="add", on_click=new_chat).props("flat round")

        with ui.scroll_area().classes("w-full h-[60vh]"):
            messages_container = ui.column().classes("w-full gap-4")
            refresh_messages()

        with ui.row().classes("w-full gap-2"):
            for label, prompt in QUICK_PROMPTS:
                button = ui.button(label, on_click=lambda p=prompt: send_message(p))
                prompt_buttons.append(button.props("outline dense"))

        with ui.row().classes("w-full gap-3 items-end"):
            input_field = (
                ui.textarea(placeholder="Type a message...")
                .props("autogrow dense rows=1")
                .classes("flex-grow")
                .on("keydown.enter.prevent", lambda: send_message())
            )
            send_btn = ui.button(icon="send", on_click=lambda: send_message()).props("round")

    set_controls(False)
    await ui.context.client.connected()
    await session.threads.ensure_thread()
    session.threads.start()
    refresh_status()

    ui.context.client.on_disconnect(session.close)


def main() -> None:
    ui.run(title="Agent Assistant", port=int(os.getenv("UI_PORT", "8080")), reload=False)


if __name__ == "__main__":
    main()
