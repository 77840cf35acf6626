"""Streamlit console for the conference booking coordinator."""

from __future__ import annotations

import hashlib
import io
from datetime import timedelta

import streamlit as st

from conference_booking import data_loader
from conference_booking.clock import ManualClock
from conference_booking.config import get_settings
from conference_booking.coordinator import BookingCoordinator
from conference_booking.errors import BookingError, DataLoaderError
from conference_booking.export import (
    ROSTER_COLUMNS,
    USER_COLUMNS,
    build_table_html,
    build_user_archive,
    roster_rows,
    rows_to_csv,
    rows_to_image_bytes,
    safe_filename,
    user_rows,
)
from conference_booking.log import setup_logging
from conference_booking.models import BookingStatus


def stringio_from_bytes(data: bytes, *, name: str) -> io.StringIO:
    text = data.decode("utf-8-sig")
    buffer = io.StringIO(text)
    setattr(buffer, "name", name)
    return buffer


def compute_signature(*datasets: bytes) -> str:
    hasher = hashlib.sha256()
    for data in datasets:
        hasher.update(data)
    return hasher.hexdigest()


@st.cache_resource
def init_logging() -> None:
    setup_logging(get_settings())


def get_dataset_bytes(state_key: str, label: str, *, default_bytes: bytes) -> tuple[bytes, bool]:
    uploaded = st.file_uploader(label, type="csv", key=f"{state_key}_uploader")
    if uploaded is not None:
        st.session_state[state_key] = uploaded.getvalue()
    if state_key in st.session_state:
        return st.session_state[state_key], True
    return default_bytes, False


def build_coordinator(conferences_bytes: bytes, users_bytes: bytes) -> tuple[BookingCoordinator, ManualClock]:
    conferences = data_loader.load_conferences(stringio_from_bytes(conferences_bytes, name="conferences.csv"))
    users = data_loader.load_users(stringio_from_bytes(users_bytes, name="users.csv"))
    clock = ManualClock()
    coordinator = BookingCoordinator.from_settings(get_settings(), clock=clock)
    data_loader.seed_coordinator(coordinator, conferences, users)
    return coordinator, clock


def report_outcome(action, success_message: str) -> None:
    try:
        result = action()
    except BookingError as exc:
        st.error(f"{type(exc).__name__}: {exc.message}")
        return
    if result is False:
        st.warning("Confirmation deadline has passed; the booking moved to the end of the waitlist.")
        return
    st.success(success_message.format(result=result))


def main() -> None:
    st.set_page_config(page_title="Conference Booking", layout="wide")
    init_logging()
    settings = get_settings()

    st.title("Conference Booking Console")
    st.caption("Book conference slots, manage waitlists and promote waitlisted bookings.")
    st.markdown(
        """
        <style>
        .booking-table {width: 100%; border-collapse: collapse;}
        .booking-table th, .booking-table td {
            border: 1px solid #d9d9d9;
            padding: 0.5rem;
            text-align: left;
            vertical-align: top;
        }
        .booking-table thead tr {background-color: #f8f9fa;}
        .sidebar-hint {font-size: 0.75rem; color: #6c757d;}
        </style>
        """,
        unsafe_allow_html=True,
    )

    default_conferences_bytes = (settings.data_dir / "conferences.csv").read_bytes()
    default_users_bytes = (settings.data_dir / "users.csv").read_bytes()

    with st.sidebar:
        st.header("Data")
        st.caption("Upload CSV files with the same columns to use different data.")
        conferences_bytes, conferences_custom = get_dataset_bytes(
            "conferences_csv",
            "Conferences (CSV)",
            default_bytes=default_conferences_bytes,
        )
        users_bytes, users_custom = get_dataset_bytes(
            "users_csv",
            "Users (CSV)",
            default_bytes=default_users_bytes,
        )
        if conferences_custom or users_custom:
            st.markdown(
                "<p class='sidebar-hint'>Uploaded data only lives for the current session.</p>",
                unsafe_allow_html=True,
            )
        if st.button("Reset session", use_container_width=True):
            for key in ("conferences_csv", "users_csv", "coordinator", "clock", "coordinator_signature"):
                st.session_state.pop(key, None)
            st.rerun()

    signature = compute_signature(conferences_bytes, users_bytes)
    if "coordinator" not in st.session_state or st.session_state.get("coordinator_signature") != signature:
        try:
            coordinator, clock = build_coordinator(conferences_bytes, users_bytes)
        except (DataLoaderError, BookingError) as exc:
            st.error(f"Could not load data: {exc}")
            st.stop()
        st.session_state.coordinator = coordinator
        st.session_state.clock = clock
        st.session_state.coordinator_signature = signature

    coordinator: BookingCoordinator = st.session_state.coordinator
    clock: ManualClock = st.session_state.clock

    with st.sidebar:
        st.header("Simulated clock")
        st.write(f"Now: **{clock.now():%Y-%m-%d %H:%M} UTC**")
        hours = st.number_input("Advance by hours", min_value=0.25, value=1.0, step=0.25)
        if st.button("Advance clock", use_container_width=True):
            clock.advance(timedelta(hours=hours))
            st.rerun()
        st.caption(f"Waitlist grace window: {settings.confirmation_grace_minutes} minutes")

    conferences = coordinator.list_conferences()
    users = sorted(user.user_id for user in coordinator.list_users())
    if not conferences or not users:
        st.info("Load at least one conference and one user to start booking.")
        st.stop()

    col_left, col_right = st.columns(2)

    with col_left:
        st.subheader("New booking")
        selected_user = st.selectbox("User", users, key="booking_user")
        selected_conference = st.selectbox(
            "Conference",
            [conference.name for conference in conferences],
            key="booking_conference",
        )
        if st.button("Book", type="primary", use_container_width=True):
            report_outcome(
                lambda: coordinator.book_conference(selected_user, selected_conference),
                "Booking {result} created.",
            )

    with col_right:
        st.subheader("Manage booking")
        open_bookings = [
            booking
            for booking in coordinator.list_bookings()
            if booking.status != BookingStatus.CANCELED
        ]
        if not open_bookings:
            st.info("There are no open bookings yet.")
        else:
            labels = {
                booking.booking_id: f"{booking.booking_id} · {booking.user_id} · {booking.conference_name}"
                for booking in open_bookings
            }
            booking_id = st.selectbox("Booking", list(labels), format_func=labels.get, key="managed_booking")
            report = coordinator.get_booking_status(booking_id)
            status_line = f"Status: **{report.status}**"
            if report.confirmation_deadline is not None:
                status_line += f" · confirm before {report.confirmation_deadline:%Y-%m-%d %H:%M} UTC"
            st.markdown(status_line)
            cancel_col, confirm_col = st.columns(2)
            with cancel_col:
                if st.button("Cancel booking", use_container_width=True):
                    report_outcome(lambda: coordinator.cancel_booking(booking_id), "Booking canceled.")
            with confirm_col:
                if st.button(
                    "Confirm waitlisted",
                    use_container_width=True,
                    disabled=report.status != BookingStatus.WAITLISTED,
                ):
                    report_outcome(
                        lambda: coordinator.confirm_waitlisted_booking(booking_id),
                        "Booking confirmed.",
                    )

    st.divider()
    st.subheader("Conference roster")
    rows = roster_rows(coordinator)
    st.markdown(build_table_html(rows, ROSTER_COLUMNS), unsafe_allow_html=True)
    download_csv, download_png = st.columns(2)
    with download_csv:
        st.download_button(
            "Download roster as CSV",
            data=rows_to_csv(rows, ROSTER_COLUMNS),
            file_name="roster.csv",
            mime="text/csv",
        )
    with download_png:
        st.download_button(
            "Download roster as image",
            data=rows_to_image_bytes(rows, ROSTER_COLUMNS),
            file_name="roster.png",
            mime="image/png",
        )

    st.divider()
    st.subheader("Bookings per user")
    selected_user_id = st.selectbox("Select a user", users, key="user_view")
    person_rows = user_rows(coordinator, selected_user_id)
    if person_rows:
        st.markdown(build_table_html(person_rows, USER_COLUMNS), unsafe_allow_html=True)
        st.download_button(
            "Download this user's bookings",
            data=rows_to_csv(person_rows, USER_COLUMNS),
            file_name=f"bookings_{safe_filename(selected_user_id)}.csv",
            mime="text/csv",
            key="user_single_download",
        )
    else:
        st.info("This user has no active bookings.")

    st.download_button(
        "Download all user bookings (ZIP)",
        data=build_user_archive(coordinator),
        file_name="user_bookings.zip",
        mime="application/zip",
    )


if __name__ == "__main__":
    main()
