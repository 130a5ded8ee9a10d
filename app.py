"""Streamlit app for commissioning custom audio mixes."""

from typing import Optional

import pandas as pd
import streamlit as st
from slugify import slugify

from mixcraft.assembler import submit_mix
from mixcraft.charts import build_timeline_figure, build_waveform
from mixcraft.codec import format_time
from mixcraft.config import AppInfo, HandoffConfig, MediaConfig
from mixcraft.exceptions import StorageError
from mixcraft.handoff import build_handoff, dump_handoff, load_handoff, transition_after
from mixcraft.logger import get_logger
from mixcraft.media_sync import MediaSyncAdapter, SimulatedTransport
from mixcraft.models import MixForm, SongEntry
from mixcraft.selector import (
    PointerDown, PointerUp, SelectorProps, Target, TimeRangeSelector, TrackGeometry,
)
from mixcraft.session import MixDraft
from mixcraft.storage import get_storage_provider
from mixcraft.youtube import extract_time_params, extract_video_id, fetch_video_title, validate_youtube_url

logger = get_logger(__name__)

# Page configuration
st.set_page_config(
    page_title=AppInfo.TITLE,
    page_icon="🎧",
    layout="centered",
    initial_sidebar_state="collapsed"
)

PAGES = ["Craft a mix", "Submissions"]


def initialize_session_state():
    """Initialize Streamlit session state variables."""
    if 'draft' not in st.session_state:
        st.session_state.draft = MixDraft.start()
    if 'previews' not in st.session_state:
        st.session_state.previews = {}  # song id -> (video id, MediaSyncAdapter)
    if 'submit_result' not in st.session_state:
        st.session_state.submit_result = None
    if 'submitting' not in st.session_state:
        st.session_state.submitting = False
    if 'video_titles' not in st.session_state:
        st.session_state.video_titles = {}


def get_preview(song: SongEntry) -> MediaSyncAdapter:
    """Preview adapter for a song, created once per song and URL."""
    previews = st.session_state.previews
    video_id = extract_video_id(song.source_url)
    if song.id in previews:
        previous_video_id, adapter = previews[song.id]
        if previous_video_id == video_id:
            return adapter
        adapter.close()

    transport = SimulatedTransport(
        duration=max(MediaConfig.DEFAULT_DURATION_SECONDS, song.end_time),
        start=song.start_time,
        end=song.end_time,
    )
    adapter = MediaSyncAdapter(transport, song.start_time, song.end_time)
    transport.load()
    previews[song.id] = (video_id, adapter)
    return adapter


def discard_preview(song_id: str):
    entry = st.session_state.previews.pop(song_id, None)
    if entry is not None:
        entry[1].close()


def video_title(url: str) -> Optional[str]:
    titles = st.session_state.video_titles
    if url not in titles:
        titles[url] = fetch_video_title(url)
    return titles[url]


def render_user_info():
    """Render contact fields."""
    st.subheader("About you")
    errors = field_errors()
    st.text_input("Name", key="name_input")
    if 'name' in errors:
        st.error(errors['name'])
    st.text_input("Email", key="email_input")
    if 'email' in errors:
        st.error(errors['email'])
    st.text_area("What is the mix for?", key="reason_input", height=80)
    if 'reason' in errors:
        st.error(errors['reason'])


def render_selector(song: SongEntry, adapter: MediaSyncAdapter):
    """Render the window selector and playback controls for one song."""
    draft: MixDraft = st.session_state.draft
    duration = adapter.duration or MediaConfig.DEFAULT_DURATION_SECONDS
    props = SelectorProps(
        min_value=0,
        max_value=duration,
        start_time=song.start_time,
        end_time=song.end_time,
        current_position=adapter.current_time,
    )

    def on_start_change(value):
        draft.update_song(song.id, start_time=value)
        adapter.on_start_change(value)

    def on_end_change(value):
        draft.update_song(song.id, end_time=value)
        adapter.on_end_change(value)

    selector = TimeRangeSelector(
        props,
        # Chart clicks report values in seconds, so the track spans the value range
        TrackGeometry(left=0, width=duration),
        on_start_change=on_start_change,
        on_end_change=on_end_change,
        on_seek=adapter.on_seek,
    )

    chart = st.plotly_chart(
        build_timeline_figure(props),
        use_container_width=True,
        config={'displayModeBar': False, 'displaylogo': False},
        on_select="rerun",
        key=f"timeline_{song.id}",
    )
    if chart and 'selection' in chart and chart['selection']['points']:
        clicked = chart['selection']['points'][0]['x']
        selector.handle(PointerDown(Target.TRACK, clicked))
        selector.handle(PointerUp())

    start, end = st.slider(
        "Clip window",
        min_value=0,
        max_value=int(duration),
        value=(int(song.start_time), int(song.end_time)),
        format="%d s",
        key=f"window_{song.id}",
    )
    if start != int(song.start_time):
        selector.propose_start(start)
    if end != int(song.end_time):
        selector.propose_end(end)

    col1, col2, col3 = st.columns([1, 2, 1])
    with col1:
        label = "⏸️ Pause" if adapter.playing else "▶️ Play"
        if st.button(label, key=f"play_{song.id}", disabled=not adapter.ready):
            adapter.toggle_playback()
            st.rerun()
    with col2:
        st.caption(
            f"{format_time(song.start_time)} – {format_time(song.end_time)} "
            f"(duration {selector.duration_label}) · playhead {format_time(adapter.current_time)}"
        )
    with col3:
        if st.button("🔄 Refresh", key=f"refresh_{song.id}"):
            st.rerun()

    if adapter.last_error is not None:
        st.warning("Preview is unavailable for this song; you can still submit it.")


def render_song_card(index: int, song: SongEntry):
    """Render the editor for one song."""
    draft: MixDraft = st.session_state.draft

    with st.expander(f"Song {index + 1}", expanded=song.is_expanded):
        url = st.text_input("YouTube link", value=song.source_url, key=f"url_{song.id}")
        if url != song.source_url:
            draft.update_song(song.id, source_url=url)
            hints = extract_time_params(url)
            if 'start_time' in hints and 'end_time' in hints and hints['start_time'] < hints['end_time']:
                draft.update_song(song.id, start_time=hints['start_time'], end_time=hints['end_time'])
            elif 'start_time' in hints and hints['start_time'] < song.end_time:
                draft.update_song(song.id, start_time=hints['start_time'])

        if song.source_url and not validate_youtube_url(song.source_url):
            st.warning("That doesn't look like a YouTube link yet.")
        elif song.source_url:
            title = video_title(song.source_url)
            if title:
                st.caption(f"🎵 {title}")
            video_id = extract_video_id(song.source_url)
            st.video(
                f"https://www.youtube.com/watch?v={video_id}",
                start_time=int(song.start_time),
                end_time=int(song.end_time),
            )
            render_selector(song, get_preview(song))

            show_waveform = st.checkbox("Show waveform", value=song.show_waveform, key=f"wave_{song.id}")
            if show_waveform != song.show_waveform:
                draft.update_song(song.id, show_waveform=show_waveform)
            if song.show_waveform:
                view = build_waveform(song.source_url, song.start_time, song.end_time)
                st.plotly_chart(view.figure, use_container_width=True,
                                config={'displayModeBar': False}, key=f"waveform_{song.id}")
                if view.message:
                    st.caption(view.message)

        notes = st.text_area("Notes for this song", value=song.notes, key=f"notes_{song.id}", height=80)
        if notes != song.notes:
            draft.update_song(song.id, notes=notes)

        if len(draft.songs) > 1 and st.button("🗑️ Remove song", key=f"remove_{song.id}"):
            discard_preview(song.id)
            draft.remove_song(song.id)
            st.rerun()


def render_transition(index: int):
    """Render the note for the move into song ``index``."""
    draft: MixDraft = st.session_state.draft
    note = draft.transition_before(index)
    if note is None:
        return
    content = st.text_area(
        f"↓ Transition from song {index} to song {index + 1}",
        value=note.content,
        key=f"transition_{note.id}",
        height=68,
    )
    if content != note.content:
        draft.set_transition(draft.songs[index].id, content)


def field_errors() -> dict:
    result = st.session_state.submit_result
    return result.field_errors if result is not None else {}


def handle_submit():
    """Post the form once; the button stays disabled while a submit is running."""
    draft: MixDraft = st.session_state.draft
    st.session_state.submitting = True
    try:
        form = MixForm(
            name=st.session_state.get('name_input'),
            email=st.session_state.get('email_input'),
            reason=st.session_state.get('reason_input'),
            songs=draft.songs_json(),
            transitions=draft.transitions_json(),
        )
        result = submit_mix(form, get_storage_provider())
        st.session_state.submit_result = result
        if result.success:
            snapshot = build_handoff(
                result.submission_id, form.name, form.email, form.reason,
                draft.songs, draft.transitions,
            )
            st.session_state[HandoffConfig.SESSION_KEY] = dump_handoff(snapshot)
            for song in draft.songs:
                discard_preview(song.id)
            st.session_state.draft = MixDraft.start()
    finally:
        st.session_state.submitting = False


def render_craft_page():
    """Render the mix request form."""
    st.title(f"🎧 {AppInfo.TITLE}")
    st.write(AppInfo.DESCRIPTION + ". Pick a clip from each song and add transition notes.")

    render_user_info()
    st.divider()
    st.subheader("Songs")

    draft: MixDraft = st.session_state.draft
    errors = field_errors()
    for index, song in enumerate(list(draft.songs)):
        if index > 0:
            render_transition(index)
        render_song_card(index, song)

    if st.button("➕ Add song"):
        draft.add_song()
        st.rerun()
    for key in ('songs', 'transitions'):
        if key in errors:
            st.error(errors[key])

    st.divider()
    result = st.session_state.submit_result
    if result is not None and not result.success:
        st.error(result.message)

    st.button(
        "🚀 Submit mix",
        type="primary",
        disabled=st.session_state.submitting,
        on_click=handle_submit,
    )


def render_success_page(snapshot: dict):
    """Render the confirmation for the submission just made."""
    st.title("✅ Your mix has been submitted!")
    st.write(f"Thanks, **{snapshot['name']}**. We'll be in touch at {snapshot['email']}.")
    st.caption(f"Submission ID: `{snapshot['submission_id']}`")
    st.markdown(f"**Purpose:** {snapshot['reason']}")

    for index, song in enumerate(snapshot['songs']):
        st.markdown(
            f"**Song {index + 1}:** {song.get('youtubeUrl') or '(no link)'}  \n"
            f"{format_time(song.get('startTime', 0))} – {format_time(song.get('endTime', 0))}"
        )
        if song.get('notes'):
            st.caption(song['notes'])
        transition = transition_after(snapshot, index)
        if transition:
            st.info(f"Transition: {transition}")

    if st.button("Craft another mix", type="primary"):
        del st.session_state[HandoffConfig.SESSION_KEY]
        st.session_state.submit_result = None
        st.rerun()


def render_submissions_page():
    """Render stored submissions, newest first."""
    st.title("📋 Submissions")
    storage = get_storage_provider()
    try:
        submissions = storage.list_submissions()
        stats = storage.get_submission_stats()
    except StorageError as e:
        logger.error("Listing failed: %s", e)
        st.error(f"Could not load submissions: {e.message}")
        return

    col1, col2, col3 = st.columns(3)
    col1.metric("Submissions", stats['total_submissions'])
    col2.metric("Songs", stats['total_songs'])
    col3.metric("People", stats['unique_emails'])

    if not submissions:
        st.info("No submissions yet.")
        return

    for submission in submissions:
        when = submission.timestamp.strftime("%Y-%m-%d %H:%M") if submission.timestamp else "unknown time"
        with st.expander(f"{submission.name} · {when} · {len(submission.songs)} songs"):
            st.write(f"**Email:** {submission.email}")
            st.write(f"**Purpose:** {submission.purpose}")
            df = pd.DataFrame([
                {
                    'song': number,
                    'link': song.source_url,
                    'start': format_time(song.start_time),
                    'end': format_time(song.end_time),
                    'notes': song.song_notes,
                    'transition out': song.transition_notes,
                }
                for number, song in enumerate(submission.songs, start=1)
            ])
            st.dataframe(df, hide_index=True, use_container_width=True)
            st.download_button(
                "⬇️ Download CSV",
                df.to_csv(index=False).encode('utf-8'),
                file_name=f"{slugify(submission.name or 'mix')}-{submission.submission_id[:8]}.csv",
                mime="text/csv",
                key=f"download_{submission.submission_id}",
            )


def main():
    """Main application function."""
    initialize_session_state()

    page = st.sidebar.radio("Page", PAGES)
    if page == "Submissions":
        render_submissions_page()
        return

    snapshot = load_handoff(st.session_state.get(HandoffConfig.SESSION_KEY))
    if snapshot is not None:
        render_success_page(snapshot)
        return
    render_craft_page()


if __name__ == "__main__":
    main()
