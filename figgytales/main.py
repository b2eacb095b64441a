"""Streamlit UI entrypoint."""

from __future__ import annotations

import asyncio
from typing import Sequence

import streamlit as st

from figgytales.config import settings
from figgytales.core.backend_client import create_backend_client
from figgytales.core.llm_engine import MockLLMEngine
from figgytales.core.models import (
    MAX_CRITERIA_COUNT,
    MAX_STORY_COUNT,
    MIN_CRITERIA_COUNT,
    MIN_STORY_COUNT,
    UserStory,
)
from figgytales.core.notifications import NotificationLog
from figgytales.core.orchestrator import SHARE_PAGE, Orchestrator
from figgytales.generators.exporters import stories_to_csv, stories_to_text
from figgytales.generators.pdf_generator import stories_to_pdf_bytes
from figgytales.utils.logger import logger
from figgytales.utils.state import SessionStore
from figgytales.utils.storage import client_storage, resolve_client_id
from figgytales.utils.uploads import ingest_uploads

PAGE_TITLE = settings.app.name
TOAST_ICONS = {"success": "✅", "info": "ℹ️", "warning": "⚠️", "error": "❌"}


def init_session_state() -> None:
    # The client id in the URL keys this browser's mirror, like localStorage would
    if "client_id" not in st.session_state:
        st.session_state.client_id = resolve_client_id(st.query_params.get("client"))
    if st.query_params.get("client") != st.session_state.client_id:
        st.query_params["client"] = st.session_state.client_id
    if "store" not in st.session_state:
        storage = client_storage(settings.app.storage_dir, st.session_state.client_id)
        st.session_state.store = SessionStore(storage=storage)
    if "notifications" not in st.session_state:
        st.session_state.notifications = NotificationLog()
    if "orchestrator" not in st.session_state:
        st.session_state.orchestrator = Orchestrator(
            store=st.session_state.store,
            history_client=create_backend_client(),
            notify=st.session_state.notifications,
        )
    if "uploader_key" not in st.session_state:
        st.session_state.uploader_key = 0


def flush_notifications() -> None:
    for notification in st.session_state.notifications.drain():
        text = notification.title
        if notification.description:
            text = f"**{notification.title}**  \n{notification.description}"
        st.toast(text, icon=TOAST_ICONS.get(notification.level))


def render_sidebar(store: SessionStore, orchestrator: Orchestrator) -> None:
    st.sidebar.header("Account")
    if store.user_id:
        st.sidebar.write(f"Signed in as **{store.user_id}**")
        if st.sidebar.button("Sign out"):
            store.logout()
            st.rerun()
    else:
        user_id = st.sidebar.text_input("Email", key="login_email")
        if st.sidebar.button("Sign in", disabled=not user_id):
            store.login(user_id)
            orchestrator.load_history()
            st.rerun()

    if isinstance(orchestrator.engine, MockLLMEngine) and settings.model.provider != "mock":
        st.sidebar.warning("Gemini is not configured; stories come from the offline mock engine.")

    if store.user_id and store.history:
        st.sidebar.divider()
        st.sidebar.header("History")
        for entry in store.history:
            label = f"{entry.timestamp:%Y-%m-%d %H:%M} · {len(entry.stories)} stories"
            if st.sidebar.button(label, key=f"history_{entry.id}"):
                store.set_stories(entry.stories)
                st.rerun()


def render_uploader(store: SessionStore) -> None:
    st.subheader("Design screens")
    uploads = st.file_uploader(
        f"Drop up to {settings.uploads.max_files} design screens",
        type=["png", "jpg", "jpeg", "svg", "webp"],
        accept_multiple_files=True,
        key=f"uploader_{st.session_state.uploader_key}",
    )
    if uploads:
        accepted, rejected = ingest_uploads(uploads, existing_count=len(store.files))
        store.add_files(accepted)
        for reason in rejected:
            st.toast(reason, icon=TOAST_ICONS["warning"])
        if accepted:
            st.toast(
                f"{len(accepted)} file{'s' if len(accepted) > 1 else ''} added. "
                "Ready to generate stories from your designs."
            )
        # New key empties the widget so the same files are not ingested twice
        st.session_state.uploader_key += 1
        st.rerun()

    if not store.files:
        return

    columns = st.columns(min(len(store.files), 5))
    for position, design_file in enumerate(store.files):
        with columns[position % len(columns)]:
            preview = store.previews.resolve(design_file.preview_handle)
            if preview and design_file.mime_type != "image/svg+xml":
                st.image(preview, caption=design_file.name, use_container_width=True)
            else:
                st.caption(design_file.name)
            if st.button("Remove", key=f"remove_{design_file.id}"):
                store.remove_file(design_file.id)
                st.rerun()


def render_settings(store: SessionStore, orchestrator: Orchestrator) -> None:
    st.subheader("Story Generation Settings")
    current = store.settings
    col1, col2 = st.columns(2)
    with col1:
        story_count = st.slider(
            "Number of User Stories", MIN_STORY_COUNT, MAX_STORY_COUNT, current.story_count
        )
        user_type = st.text_input("Primary user type", current.user_type)
    with col2:
        criteria_count = st.slider(
            "Acceptance Criteria per Story", MIN_CRITERIA_COUNT, MAX_CRITERIA_COUNT, current.criteria_count
        )
        audience_type = st.text_input("Audience (optional)", current.audience_type or "")

    rejected = store.update_settings(
        storyCount=story_count,
        criteriaCount=criteria_count,
        userType=user_type,
        audienceType=audience_type or None,
    )
    if rejected:
        st.caption(f"Ignored invalid values for: {', '.join(rejected)}")

    generating = store.is_generating
    if st.button(
        "Generating Stories..." if generating else "Generate User Stories",
        disabled=not store.files or generating,
        type="primary",
        use_container_width=True,
    ):
        with st.spinner("Generating stories from your designs..."):
            asyncio.run(orchestrator.generate())
        st.rerun()


def render_results(store: SessionStore, orchestrator: Orchestrator) -> None:
    if not store.stories:
        return

    st.divider()
    st.subheader(f"Generated user stories ({len(store.stories)})")

    col1, col2, col3, col4 = st.columns(4)
    with col1:
        st.download_button(
            "Download CSV",
            data=stories_to_csv(store.stories),
            file_name="figgytales-stories.csv",
            mime="text/csv",
            use_container_width=True,
        )
    with col2:
        st.download_button(
            "Download PDF",
            data=stories_to_pdf_bytes(store.stories, project_name=f"{PAGE_TITLE} user stories"),
            file_name="figgytales-stories.pdf",
            mime="application/pdf",
            use_container_width=True,
        )
    with col3:
        if st.button("Share", use_container_width=True):
            share_url = orchestrator.create_share_link()
            if share_url:
                st.session_state.share_url = share_url
    with col4:
        if st.button("Clear all", use_container_width=True):
            store.clear_files()
            st.session_state.pop("share_url", None)
            st.rerun()

    if st.session_state.get("share_url"):
        st.code(st.session_state.share_url, language=None)

    with st.expander("Copy all"):
        st.code(stories_to_text(store.stories), language=None)

    if not store.user_id:
        st.caption("Sign in to save your generated stories to your history")

    render_story_cards(store.stories)


def render_story_cards(stories: Sequence[UserStory]) -> None:
    for story in stories:
        with st.container(border=True):
            st.markdown(f"#### {story.title}")
            st.write(story.description)
            st.markdown("**Acceptance Criteria**")
            st.markdown("\n".join(f"{n}. {text}" for n, text in enumerate(story.criteria_texts, start=1)))


def render_home() -> None:
    store: SessionStore = st.session_state.store
    orchestrator: Orchestrator = st.session_state.orchestrator

    st.title(PAGE_TITLE)
    st.caption("Turn UI design screenshots into user stories with acceptance criteria.")

    render_sidebar(store, orchestrator)
    render_uploader(store)
    render_settings(store, orchestrator)
    render_results(store, orchestrator)
    logger.debug("Rendered page with {} file(s), {} story(ies)", len(store.files), len(store.stories))


def render_share_page() -> None:
    """Read-only view of a shared story set; the visitor's own session is left alone."""
    orchestrator: Orchestrator = st.session_state.orchestrator

    st.title("Shared user stories")
    link = st.query_params.get("id") or st.text_input("Share link or id")
    if not link:
        st.info("Open a FiggyTales share link to see the stories it contains.")
        return

    stories = orchestrator.open_share(link)
    if not stories:
        st.warning("These shared stories could not be loaded.")
        return

    st.caption(f"{len(stories)} shared user stories")
    st.download_button(
        "Download CSV",
        data=stories_to_csv(stories),
        file_name="figgytales-shared-stories.csv",
        mime="text/csv",
    )
    render_story_cards(stories)


def main() -> None:
    st.set_page_config(page_title=PAGE_TITLE, layout="wide")
    init_session_state()
    page = st.navigation(
        [
            st.Page(render_home, title=PAGE_TITLE, default=True),
            st.Page(render_share_page, title="Shared stories", url_path=SHARE_PAGE),
        ]
    )
    page.run()
    flush_notifications()


if __name__ == "__main__":
    main()
