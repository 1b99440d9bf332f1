"""
Streamlit Frontend for Chat Ledger

A chat page over the conversation flow. Each message typed here is
handled exactly as a message from any other chat transport would be.

DESIGN PRINCIPLES:
1. The UI holds no ledger state; the flow owns it
2. Every reply is a CommandResult rendered as a chat bubble
3. Export files are offered as download buttons next to the reply
4. Destructive commands still need a typed confirmation
"""

import asyncio

import streamlit as st

from chatledger.config import validate_all_settings
from chatledger.models.command import CommandResult
from chatledger.orchestrator import ConversationFlow, create_app_components


# Page configuration
st.set_page_config(
    page_title="Chat Ledger",
    page_icon="💰",
    layout="centered",
    initial_sidebar_state="expanded",
)


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_components():
    """Get or create application components (cached)."""
    return create_app_components()


def render_result(result: CommandResult, key: str) -> None:
    """Render a reply bubble body, plus a download button for any attachment."""
    if result.success:
        st.markdown(result.message)
    else:
        st.error(result.message)

    if result.requires_confirmation:
        st.caption("Reply to confirm or cancel.")

    if result.attachment is not None:
        st.download_button(
            label=f"⬇️ {result.attachment.filename}",
            data=result.attachment.content,
            file_name=result.attachment.filename,
            mime=result.attachment.mime_type,
            key=f"download-{key}",
        )
        if result.attachment.caption:
            st.caption(result.attachment.caption)


def render_sidebar(flow: ConversationFlow, sheets_connected: bool) -> str:
    """Render the sidebar and return the active user id."""
    st.sidebar.title("💰 Chat Ledger")
    st.sidebar.markdown("---")

    user_id = st.sidebar.text_input("Your user id", value="local-user").strip() or "local-user"

    if sheets_connected:
        st.sidebar.success("✅ Google Sheets - Connected")
    else:
        st.sidebar.warning("⚠️ Memory only - data is lost on restart")

    st.sidebar.caption(f"Active sessions: {len(flow.sessions)}")

    with st.sidebar.expander("⚙️ Configuration"):
        checks = validate_all_settings()
        for name, ok in checks.items():
            if name.endswith("_error"):
                continue
            if ok:
                st.write(f"✅ {name}")
            else:
                st.write(f"❌ {name}: {checks.get(f'{name}_error', '')}")

    if st.sidebar.button("🧹 Clear this chat view"):
        st.session_state.chat_history[user_id] = []

    st.sidebar.markdown("---")
    st.sidebar.markdown(
        """
        **Try saying:**
        - "Spent $12 on lunch"
        - "Received $500 salary"
        - "show balance"
        - "budget status"

        Type **help** for every command.
        """
    )
    return user_id


def main():
    """Main application entry point."""
    flow, sheets_client = get_components()

    if "chat_history" not in st.session_state:
        st.session_state.chat_history = {}

    user_id = render_sidebar(flow, sheets_client is not None)
    history = st.session_state.chat_history.setdefault(user_id, [])

    st.title("💬 Chat Ledger")

    for index, (role, payload) in enumerate(history):
        with st.chat_message(role):
            if role == "user":
                st.markdown(payload)
            else:
                render_result(payload, key=f"{user_id}-{index}")

    prompt = st.chat_input("Tell me about a transaction, or ask for your balance")
    if not prompt:
        return

    history.append(("user", prompt))
    with st.chat_message("user"):
        st.markdown(prompt)

    with st.chat_message("assistant"):
        with st.spinner("Thinking..."):
            result = run_async(flow.handle_message(user_id, prompt))
        history.append(("assistant", result))
        render_result(result, key=f"{user_id}-{len(history) - 1}")


if __name__ == "__main__":
    main()
