"""
Streamlit Frontend for Voice Ledger

This is the screen a household business owner uses every day to keep the
S1a-HKD revenue book.

DESIGN PRINCIPLES:
1. Speak first: every field has a microphone
2. Typing always works, even when the AI is offline
3. Clear, short messages in Vietnamese
4. Nothing is destroyed without an explicit confirmation

The UI never edits the ledger directly: all changes go through the
controller, and every action ends with an autosave flush.
"""

import asyncio
import hashlib
from typing import Optional

import streamlit as st

from voice_ledger.models.ledger import INFO_FIELD_LABELS, INFO_FIELDS, CaptureTarget
from voice_ledger.notifications import NotificationKind
from voice_ledger.orchestrator import (
    DRIVE_CONFIRM_MESSAGE,
    AppComponents,
    CaptureState,
    create_app_components,
)
from voice_ledger.services.export import ShareChannel
from voice_ledger.validation.normalizers import format_amount_display


# Page configuration
st.set_page_config(
    page_title="Sổ doanh thu AI",
    page_icon="📒",
    layout="centered",
)

INFO_PLACEHOLDERS = {
    "name": "Nguyễn Văn A",
    "address": "Số nhà, Tên đường...",
    "tax_id": "0123456789",
    "location": "Chợ, Cửa hàng...",
    "period": "Tháng 10/2023",
}


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


async def _then_flush(components: AppComponents, coro):
    try:
        return await coro
    finally:
        await components.autosave.drain()


def run_action(components: AppComponents, coro):
    """Run an async action and persist whatever it changed."""
    return run_async(_then_flush(components, coro))


@st.cache_resource
def get_components() -> AppComponents:
    """Get or create application components (cached), loading the stored ledger once."""
    components = create_app_components()
    run_async(components.start())
    return components


def new_clip(widget_key: str, clip) -> Optional[bytes]:
    """
    Return the recorded bytes only the first time a clip is seen.

    st.audio_input keeps returning the same recording on every rerun.
    """
    if clip is None:
        return None
    data = clip.getvalue()
    digest = hashlib.sha1(data).hexdigest()
    seen_key = f"{widget_key}__seen"
    if st.session_state.get(seen_key) == digest:
        return None
    st.session_state[seen_key] = digest
    return data


def main():
    """Main application entry point."""
    components = get_components()

    st.caption("Cục Thuế Tỉnh Điện Biên")
    st.title("Sổ doanh thu AI")

    view = st.radio("Chế độ", ["✏️ Sửa sổ", "📄 Xem & gửi"], horizontal=True)

    if view == "✏️ Sửa sổ":
        render_edit_view(components)
    else:
        render_preview_view(components)

    # Text edits happen synchronously; make sure they reach disk
    if components.autosave.has_pending_work:
        run_async(components.autosave.drain())


def render_status(components: AppComponents):
    controller = components.controller
    notification = components.capture_flow.notifications.current()

    col1, col2 = st.columns([1, 3])
    with col1:
        if controller.ai_available:
            st.markdown("🟢 **AI: Sẵn sàng**")
        else:
            st.markdown("🔴 **AI: Offline**")
    with col2:
        if notification is None:
            st.caption('Nhấn Micro để nói. VD: "Hôm nay bán được 5 triệu"')
        elif notification.is_error:
            st.error(notification.message)
        elif notification.kind == NotificationKind.SUCCESS:
            st.success(notification.message)
        else:
            st.info(notification.message)


def render_smart_add(components: AppComponents):
    st.subheader("🎙️ Thêm giao dịch bằng giọng nói")
    clip = st.audio_input("Nói một câu về giao dịch", key="smart_add")
    data = new_clip("smart_add", clip)
    if data:
        with st.spinner("AI đang lắng nghe..."):
            run_action(
                components,
                components.capture_flow.capture_new_transaction(data, clip.type or "audio/wav"),
            )
        st.rerun()


def render_info_form(components: AppComponents):
    controller = components.controller
    flow = components.capture_flow
    info = controller.snapshot().info

    st.subheader("📘 Thông tin chung")

    for field in INFO_FIELDS:
        label = INFO_FIELD_LABELS[field]
        widget_key = f"info_{field}"
        target = CaptureTarget.info_field(field)

        col1, col2 = st.columns([3, 2])
        with col1:
            st.text_input(
                label,
                value=getattr(info, field),
                placeholder=INFO_PLACEHOLDERS[field],
                key=f"{widget_key}_{controller.generation}",
                on_change=_on_info_change,
                args=(controller, field, f"{widget_key}_{controller.generation}"),
                disabled=flow.state_of(target) == CaptureState.PROCESSING,
            )
        with col2:
            clip = st.audio_input(f"Nói {label.lower()}", key=f"{widget_key}_mic")
            data = new_clip(f"{widget_key}_mic", clip)
            if data:
                with st.spinner("Đang nghe..."):
                    run_action(
                        components,
                        flow.capture_info_field(field, data, clip.type or "audio/wav"),
                    )
                st.rerun()


def _on_info_change(controller, field: str, state_key: str):
    controller.update_info_field(field, st.session_state[state_key])


def _on_transaction_change(controller, transaction_id: str, field: str, state_key: str):
    controller.update_transaction(transaction_id, field, st.session_state[state_key])
    if field == "amount":
        # Show the sanitized amount, not what was typed ("abc" is stored as 0)
        transaction = controller.snapshot().find(transaction_id)
        if transaction is not None:
            st.session_state[state_key] = format_amount_display(transaction.amount)


def render_transactions(components: AppComponents):
    controller = components.controller
    flow = components.capture_flow
    document = controller.snapshot()
    # Reset brings back the sample ids; a new generation drops stale widget text
    generation = controller.generation

    st.subheader("💵 Doanh thu chi tiết")

    for transaction in document.transactions:
        tid = transaction.id
        with st.container(border=True):
            col1, col2, col3 = st.columns([2, 2, 1])
            with col1:
                key = f"date_{tid}_{generation}"
                st.text_input(
                    "Ngày",
                    value=transaction.date,
                    key=key,
                    on_change=_on_transaction_change,
                    args=(controller, tid, "date", key),
                )
            with col2:
                key = f"amount_{tid}_{generation}"
                st.text_input(
                    "Số tiền",
                    value=format_amount_display(transaction.amount),
                    placeholder="0",
                    key=key,
                    on_change=_on_transaction_change,
                    args=(controller, tid, "amount", key),
                )
            with col3:
                st.write("")
                if st.button("🗑️", key=f"remove_{tid}", help="Xóa giao dịch"):
                    controller.remove_transaction(tid)
                    st.rerun()

            key = f"description_{tid}_{generation}"
            st.text_area(
                "Nội dung",
                value=transaction.description,
                placeholder="Nội dung bán hàng...",
                key=key,
                height=68,
                on_change=_on_transaction_change,
                args=(controller, tid, "description", key),
                disabled=flow.state_of(CaptureTarget.transaction(tid)) == CaptureState.PROCESSING,
            )
            clip = st.audio_input("Nói nội dung", key=f"mic_{tid}")
            data = new_clip(f"mic_{tid}", clip)
            if data:
                with st.spinner("Đang nghe..."):
                    run_action(
                        components,
                        flow.capture_transaction_description(tid, data, clip.type or "audio/wav"),
                    )
                # Drop the widget's cached text so the dictated value shows
                st.session_state.pop(key, None)
                st.rerun()

    if st.button("➕ Thêm giao dịch mới", use_container_width=True):
        controller.add_transaction()
        st.rerun()


def render_reset(components: AppComponents):
    st.markdown("---")
    if not st.session_state.get("confirm_reset"):
        if st.button("↺ Xóa tất cả"):
            st.session_state.confirm_reset = True
            st.rerun()
        return

    st.warning("**Xóa tất cả?** Hành động này không thể hoàn tác.")
    col1, col2 = st.columns(2)
    with col1:
        if st.button("Xác nhận xóa", type="primary"):
            run_async(components.reset())
            st.session_state.confirm_reset = False
            st.rerun()
    with col2:
        if st.button("Hủy"):
            st.session_state.confirm_reset = False
            st.rerun()


def render_edit_view(components: AppComponents):
    render_status(components)
    render_smart_add(components)
    render_info_form(components)
    render_transactions(components)
    render_reset(components)


def render_preview_view(components: AppComponents):
    export_flow = components.export_flow
    document = components.controller.snapshot()
    info = document.info

    st.subheader("SỔ CHI TIẾT DOANH THU BÁN HÀNG HÓA, DỊCH VỤ")
    st.caption("Mẫu số S1a-HKD")
    for field in INFO_FIELDS:
        st.markdown(f"**{INFO_FIELD_LABELS[field]}:** {getattr(info, field)}")

    st.table([
        {
            "Ngày tháng": t.date,
            "Giao dịch": t.description,
            "Số tiền": format_amount_display(t.amount) or "0",
        }
        for t in document.transactions
    ])
    st.markdown(f"**Tổng cộng:** {format_amount_display(document.total_amount) or '0'}")

    artifact = export_flow.build_artifact(document)
    st.download_button(
        "⬇️ Tải file Excel",
        data=artifact.data,
        file_name=artifact.file_name,
        mime=artifact.mime_type,
        use_container_width=True,
    )

    col1, col2 = st.columns(2)
    with col1:
        if st.button("✉️ Gửi qua Email", use_container_width=True):
            result = run_async(export_flow.share_artifact())
            if result.channel == ShareChannel.DOWNLOAD_AND_EMAIL:
                st.info(
                    f"Tệp {result.file_name} đã được lưu tại {result.location}. "
                    "Hãy đính kèm tệp này vào Email."
                )
            else:
                st.success("Đã gửi sổ doanh thu.")
    with col2:
        if st.button("☁️ Lưu Google Drive", use_container_width=True):
            # Download first, so the question that follows is true
            st.session_state.drive_download = run_async(export_flow.download(document))
            st.session_state.confirm_drive = True

    if st.session_state.get("confirm_drive"):
        st.caption(f"Đã lưu: {st.session_state.get('drive_download', '')}")
        st.info(DRIVE_CONFIRM_MESSAGE)
        col1, col2 = st.columns(2)
        with col1:
            if st.button("OK"):
                export_flow.open_drive()
                st.session_state.confirm_drive = False
                st.rerun()
        with col2:
            if st.button("Hủy", key="cancel_drive"):
                st.session_state.confirm_drive = False
                st.rerun()


if __name__ == "__main__":
    main()
