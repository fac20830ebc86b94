"""
Streamlit Frontend for Khoroch Khata

The screens people use every day to record household income and
expenses, one profile per family member.

DESIGN PRINCIPLES:
1. Simple, clear interface in Bengali
2. Every change is saved immediately (no "save all" step)
3. Clear error messages at the point of entry
4. No logic here: every number comes from khata.derive or the flows

The UI only renders. Mutations go through the store; views come from
the orchestrator's flows.
"""

import asyncio
import base64
from datetime import date

import streamlit as st

from khata.agents import AdvisoryLockedError
from khata.audit import configure_logging
from khata.auth import AuthError, AuthGate, AuthMode
from khata.config import get_settings, validate_all_settings
from khata.derive import (
    available_categories,
    category_icon,
    filter_transactions,
    format_amount,
    format_date,
    payment_icon,
    sort_by_date,
    sorted_reminders,
    transactions_to_csv,
)
from khata.models import (
    QUICK_PAYMENT_CATEGORIES,
    CurrencyPosition,
    DateFilterType,
    DateRange,
    PaymentMethod,
    SoundKind,
    Theme,
    TransactionType,
)
from khata.orchestrator import KhataComponents, create_app_components
from khata.portability import InvalidBackupError, InvalidSyncCodeError
from khata.store import StoreError


# Page configuration
st.set_page_config(
    page_title="খরচ খাতা",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)

AVATARS = ["😊", "😎", "💼", "🏠", "💰", "📉", "🛒", "🍔", "✈️", "🎮"]
CURRENCIES = {"৳": "টাকা (BDT)", "$": "Dollar (USD)", "₹": "Rupee (INR)"}
RANGE_LABELS = {
    DateFilterType.TODAY: "আজ",
    DateFilterType.THIS_WEEK: "এই সপ্তাহ",
    DateFilterType.THIS_MONTH: "এই মাস",
    DateFilterType.LAST_MONTH: "গত মাস",
    DateFilterType.ALL: "সব",
    DateFilterType.CUSTOM: "কাস্টম",
}
TYPE_LABELS = {TransactionType.EXPENSE: "ব্যয়", TransactionType.INCOME: "আয়"}


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_components() -> KhataComponents:
    """Get or create application components (cached, shared by all sessions)."""
    configure_logging(debug=get_settings().app.debug_mode)
    return create_app_components()


def get_auth_gate(components: KhataComponents) -> AuthGate:
    """Login state lives in the browser session, not in the shared cache."""
    if "auth_gate" not in st.session_state:
        st.session_state.auth_gate = components.new_auth_gate()
    return st.session_state.auth_gate


@st.fragment(run_every=get_settings().app.reminder_poll_seconds)
def reminder_sweep(components: KhataComponents):
    """Reruns on its own every poll interval while the page is open."""
    for reminder in components.sweep_reminders(get_auth_gate(components)):
        st.toast(f"⏰ {reminder.task}")


def to_data_url(uploaded) -> str:
    payload = base64.b64encode(uploaded.getvalue()).decode("ascii")
    return f"data:{uploaded.type};base64,{payload}"


def main():
    """Main application entry point."""
    components = get_components()
    gate = get_auth_gate(components)

    if not gate.is_logged_in:
        render_auth_gate(components)
        return

    # Only rendered while logged in, so the sweep stops on logout
    reminder_sweep(components)

    render_sidebar(components)

    page = st.sidebar.radio(
        "মেনু",
        ["📊 ড্যাশবোর্ড", "📒 লেনদেন", "⏰ রিমাইন্ডার", "🗂️ ক্যাটাগরি ও বাজেট", "🤖 পরামর্শ", "⚙️ সেটিংস"],
        index=0,
    )

    if page == "📊 ড্যাশবোর্ড":
        render_dashboard(components)
    elif page == "📒 লেনদেন":
        render_transactions_page(components)
    elif page == "⏰ রিমাইন্ডার":
        render_reminders_page(components)
    elif page == "🗂️ ক্যাটাগরি ও বাজেট":
        render_categories_page(components)
    elif page == "🤖 পরামর্শ":
        render_advice_page(components)
    elif page == "⚙️ সেটিংস":
        render_settings_page(components)


# =============================================================================
# AUTH GATE
# =============================================================================

def render_auth_gate(components: KhataComponents):
    gate = get_auth_gate(components)
    st.title("💰 খরচ খাতা")

    if gate.success_message:
        st.success(gate.success_message)
    if gate.last_error:
        st.error(gate.last_error.message)

    try:
        if gate.mode == AuthMode.LOGGED_OUT:
            col1, col2, col3 = st.columns(3)
            if col1.button("লগইন", type="primary"):
                gate.choose(AuthMode.LOGIN)
                st.rerun()
            if col2.button("নতুন একাউন্ট"):
                gate.choose(AuthMode.SIGNUP)
                st.rerun()
            if col3.button("পাসওয়ার্ড ভুলে গেছি"):
                gate.choose(AuthMode.RECOVERY)
                st.rerun()

            with st.expander("🔄 সিঙ্ক কোড দিয়ে ডাটা আনুন"):
                code = st.text_area("সিঙ্ক কোড")
                if st.button("ইমপোর্ট"):
                    try:
                        gate.import_sync_code(code)
                    except InvalidSyncCodeError:
                        st.error("ভুল সিঙ্ক কোড! দয়া করে সঠিক কোডটি কপি করে আনুন।")
                    else:
                        st.rerun()

        elif gate.mode == AuthMode.LOGIN:
            with st.form("login"):
                email = st.text_input("ইমেইল")
                password = st.text_input("পাসওয়ার্ড", type="password")
                submitted = st.form_submit_button("লগইন", type="primary")
            if submitted:
                gate.submit_login(email, password)
                st.rerun()

        elif gate.mode == AuthMode.SIGNUP:
            render_signup_step(components)

        elif gate.mode == AuthMode.RECOVERY:
            if gate.step == 1:
                email = st.text_input("একাউন্টের ইমেইল")
                if st.button("পরবর্তী", type="primary"):
                    gate.submit_recovery_email(email)
                    st.rerun()
            else:
                password = st.text_input("নতুন পাসওয়ার্ড", type="password")
                confirm = st.text_input("আবার লিখুন", type="password")
                if st.button("পাসওয়ার্ড সেভ করুন", type="primary"):
                    gate.submit_new_password(password, confirm)
                    st.rerun()

        if gate.mode != AuthMode.LOGGED_OUT and st.button("⬅️ পিছনে"):
            gate.back()
            st.rerun()

    except AuthError:
        st.rerun()


def render_signup_step(components: KhataComponents):
    gate = get_auth_gate(components)
    st.progress(gate.step / 4)

    if gate.step == 1:
        email = st.text_input("ইমেইল")
        password = st.text_input("পাসওয়ার্ড", type="password")
        if st.button("পরবর্তী", type="primary"):
            gate.submit_signup(email, password)
            st.rerun()
    elif gate.step == 2:
        name = st.text_input("আপনার নাম")
        if st.button("পরবর্তী", type="primary"):
            gate.submit_name(name)
            st.rerun()
    elif gate.step == 3:
        avatar = st.radio("অবতার বেছে নিন", AVATARS, horizontal=True)
        uploaded = st.file_uploader("অথবা ছবি দিন", type=["png", "jpg", "jpeg", "webp"])
        if st.button("পরবর্তী", type="primary"):
            gate.submit_avatar(avatar, to_data_url(uploaded) if uploaded else None)
            st.rerun()
    else:
        symbol = st.radio(
            "কারেন্সি",
            list(CURRENCIES),
            format_func=lambda s: f"{s}  {CURRENCIES[s]}",
        )
        if st.button("শুরু করুন", type="primary"):
            gate.submit_currency(symbol)
            st.rerun()


# =============================================================================
# SIDEBAR
# =============================================================================

def render_sidebar(components: KhataComponents):
    store = components.store
    state = store.state
    profile = state.active_profile

    st.sidebar.title("💰 খরচ খাতা")
    if profile:
        if profile.image:
            st.sidebar.image(profile.image, width=64)
        st.sidebar.markdown(f"### {profile.avatar or ''} {profile.name}")

    if len(state.profiles) > 1:
        ids = [p.id for p in state.profiles]
        chosen = st.sidebar.selectbox(
            "প্রোফাইল",
            ids,
            index=ids.index(state.active_profile_id),
            format_func=lambda pid: state.get_profile(pid).name,
        )
        if chosen != state.active_profile_id:
            store.switch_profile(chosen)
            st.rerun()

    with st.sidebar.expander("➕ নতুন প্রোফাইল"):
        name = st.text_input("নাম", key="new_profile_name")
        avatar = st.selectbox("অবতার", AVATARS, key="new_profile_avatar")
        if st.button("যোগ করুন", key="add_profile") and name.strip():
            store.add_profile(name, avatar)
            st.rerun()

    if profile and len(state.profiles) > 1:
        if st.sidebar.button("🗑️ এই প্রোফাইল মুছুন"):
            store.delete_profile(profile.id)
            st.rerun()

    if st.sidebar.button("🚪 লগআউট"):
        get_auth_gate(components).logout()
        st.rerun()

    st.sidebar.markdown("---")


def select_range(key: str) -> DateRange:
    kind = st.selectbox(
        "সময়সীমা",
        list(RANGE_LABELS),
        index=2,
        format_func=RANGE_LABELS.get,
        key=f"{key}_range",
    )
    if kind != DateFilterType.CUSTOM:
        return DateRange(type=kind)
    col1, col2 = st.columns(2)
    start = col1.date_input("শুরু", value=None, key=f"{key}_start")
    end = col2.date_input("শেষ", value=None, key=f"{key}_end")
    return DateRange(type=kind, start=start, end=end)


# =============================================================================
# DASHBOARD
# =============================================================================

def render_dashboard(components: KhataComponents):
    state = components.store.state
    currency = state.currency
    st.title("📊 ড্যাশবোর্ড")

    summary = components.dashboard.summarize(select_range("dashboard"))

    col1, col2, col3 = st.columns(3)
    col1.metric("আয়", format_amount(summary.totals.income, currency))
    col2.metric("ব্যয়", format_amount(summary.totals.expense, currency))
    col3.metric("ব্যালেন্স", format_amount(summary.totals.balance, currency))

    st.subheader("⚡ দ্রুত পেমেন্ট")
    cols = st.columns(len(QUICK_PAYMENT_CATEGORIES))
    for col, category in zip(cols, QUICK_PAYMENT_CATEGORIES):
        if col.button(category, key=f"quick_{category}"):
            st.session_state.entry = components.transactions.quick_payment(category)

    if "entry" in st.session_state:
        render_entry_form(components)

    if summary.breakdown:
        st.subheader("ক্যাটাগরি অনুযায়ী খরচ")
        st.bar_chart({c.category: float(c.total) for c in summary.breakdown})

    if summary.budgets:
        st.subheader("এই মাসের বাজেট")
        for item in summary.budgets:
            st.write(
                f"{item.category}: {format_amount(item.spent, currency)} / "
                f"{format_amount(item.limit, currency)}"
            )
            st.progress(float(item.percent) / 100)
            if item.is_exceeded:
                st.warning(f"{item.category} বাজেট ছাড়িয়ে গেছে!")


# =============================================================================
# TRANSACTIONS
# =============================================================================

def render_entry_form(components: KhataComponents, editing=None):
    """Add / edit form wired to the smart lookup."""
    lookup = st.session_state.entry
    state = components.store.state

    kind = st.radio(
        "টাইপ",
        list(TYPE_LABELS),
        index=list(TYPE_LABELS).index(lookup.type),
        format_func=TYPE_LABELS.get,
        horizontal=True,
    )
    lookup.set_type(kind)

    note = st.text_input("বিবরণ", value=lookup.note)
    if note != lookup.note:
        lookup.on_note_changed(note)

    if lookup.historical_match is not None:
        match = lookup.historical_match
        if st.button(
            f"💡 আগের মতো: {match.category} · {format_amount(match.amount, state.currency)}"
        ):
            lookup.apply_historical_match()
            st.rerun()

    names = state.categories.names(lookup.type)
    if lookup.category and lookup.category not in names:
        names = [lookup.category, *names]
    category = st.selectbox(
        "ক্যাটাগরি" + (" ✨ সাজেস্টেড" if lookup.show_hint else ""),
        names,
        index=names.index(lookup.category) if lookup.category in names else 0,
    )
    if category != lookup.category:
        lookup.choose_category(category)

    amount = st.number_input(
        f"পরিমাণ ({state.currency.symbol})",
        min_value=0.0,
        value=float(lookup.amount or 0),
        step=10.0,
    )
    methods = list(PaymentMethod)
    lookup.payment_method = st.selectbox(
        "পেমেন্ট",
        methods,
        index=methods.index(lookup.payment_method),
        format_func=lambda m: m.value,
    )
    on = st.date_input("তারিখ", value=editing.date if editing else date.today())

    col1, col2 = st.columns(2)
    if col1.button("সেভ করুন", type="primary") and amount > 0:
        try:
            components.transactions.save_entry(
                lookup, str(amount), on,
                transaction_id=editing.id if editing else None,
            )
        except (StoreError, ValueError) as e:
            st.error(str(e))
        else:
            del st.session_state.entry
            st.session_state.pop("editing", None)
            st.rerun()
    if col2.button("বাতিল"):
        del st.session_state.entry
        st.session_state.pop("editing", None)
        st.rerun()


def render_transactions_page(components: KhataComponents):
    store = components.store
    state = store.state
    currency = state.currency
    st.title("📒 লেনদেন")

    if st.button("➕ নতুন লেনদেন", type="primary"):
        st.session_state.entry = components.transactions.start_entry()
        st.session_state.pop("editing", None)

    if "entry" in st.session_state:
        render_entry_form(components, st.session_state.get("editing"))
        st.markdown("---")

    in_range = components.dashboard.transactions(select_range("list"))

    col1, col2, col3 = st.columns(3)
    kind = col1.selectbox(
        "টাইপ", [None, *TYPE_LABELS],
        format_func=lambda k: "সব" if k is None else TYPE_LABELS[k],
    )
    category_names = [c.name for c in available_categories(state.categories, kind)]
    category = col2.selectbox("ক্যাটাগরি", ["", *dict.fromkeys(category_names)],
                              format_func=lambda c: c or "সব")
    search = col3.text_input("খুঁজুন")

    rows = sort_by_date(filter_transactions(in_range, kind, category or None, search))
    st.caption(f"মোট: {len(rows)} টি লেনদেন")

    st.download_button(
        "📥 CSV ডাউনলোড",
        transactions_to_csv(rows, currency).encode("utf-8"),
        file_name=f"Report-{date.today().isoformat()}.csv",
        mime="text/csv",
    )

    for t in rows:
        col1, col2, col3, col4 = st.columns([4, 2, 1, 1])
        icon = category_icon(state.categories, t.category, t.type)
        sign = "+" if t.type == TransactionType.INCOME else "-"
        col1.write(
            f"`{icon}` **{t.category}** · {t.note or ''}  \n"
            f"{format_date(t.date)} · `{payment_icon(t.payment_method)}` {t.payment_method.value}"
        )
        col2.write(f"{sign}{format_amount(t.amount, currency)}")
        if col3.button("✏️", key=f"edit_{t.id}"):
            lookup = components.transactions.start_entry(t.type, t.category)
            lookup.note = t.note
            lookup.amount = t.amount
            lookup.payment_method = t.payment_method
            st.session_state.entry = lookup
            st.session_state.editing = t
            st.rerun()
        if col4.button("🗑️", key=f"del_{t.id}"):
            store.delete_transaction(t.id)
            st.rerun()


# =============================================================================
# REMINDERS
# =============================================================================

def render_reminders_page(components: KhataComponents):
    store = components.store
    state = store.state
    st.title("⏰ রিমাইন্ডার")

    with st.form("reminder"):
        task = st.text_input("কাজ")
        on = st.date_input("তারিখ", value=date.today())
        at = st.time_input("সময়", value=None)
        submitted = st.form_submit_button("যোগ করুন", type="primary")
    if submitted and task.strip():
        store.add_reminder(task.strip(), on, at.strftime("%H:%M") if at else None)
        st.rerun()

    for r in sorted_reminders(state.profile_reminders(state.active_profile_id)):
        col1, col2, col3 = st.columns([5, 1, 1])
        label = f"{r.task} · {r.date.isoformat()} {r.remind_time or ''}"
        col1.write(f"~~{label}~~" if r.is_completed else label)
        if col2.button("✅", key=f"toggle_{r.id}"):
            store.toggle_reminder(r.id)
            st.rerun()
        if col3.button("🗑️", key=f"delrem_{r.id}"):
            store.delete_reminder(r.id)
            st.rerun()


# =============================================================================
# CATEGORIES & BUDGETS
# =============================================================================

def render_categories_page(components: KhataComponents):
    store = components.store
    state = store.state
    st.title("🗂️ ক্যাটাগরি ও বাজেট")

    kind = st.radio(
        "টাইপ", list(TYPE_LABELS), format_func=TYPE_LABELS.get, horizontal=True,
    )

    col1, col2 = st.columns([3, 1])
    name = col1.text_input("নতুন ক্যাটাগরি")
    if col2.button("যোগ করুন") and name.strip():
        try:
            store.add_category(kind, name)
        except StoreError as e:
            st.warning(str(e))
        else:
            st.rerun()

    profile = state.active_profile
    for category in state.categories.for_type(kind):
        col1, col2, col3 = st.columns([3, 2, 1])
        col1.write(f"`{category.icon}` {category.name}")
        if kind == TransactionType.EXPENSE and profile is not None:
            limit = col2.number_input(
                "মাসিক বাজেট",
                min_value=0.0,
                value=float(profile.budgets.get(category.name, 0)),
                step=100.0,
                key=f"budget_{category.name}",
            )
            if limit != float(profile.budgets.get(category.name, 0)):
                store.set_budget(category.name, str(limit))
                st.rerun()
        if col3.button("🗑️", key=f"delcat_{kind.value}_{category.name}"):
            store.delete_category(kind, category.name)
            st.rerun()


# =============================================================================
# ADVICE
# =============================================================================

def render_advice_page(components: KhataComponents):
    state = components.store.state
    advisory = components.advisory
    st.title("🤖 স্মার্ট খরচ বিশ্লেষণ")

    transactions = components.dashboard.transactions(select_range("advice"))
    remaining, percent = advisory.unlock_progress(transactions)
    if remaining:
        st.progress(percent / 100)
        st.info(f"আরও {remaining}টি লেনদেন যোগ করে AI এনালাইসিস আনলক করুন!")
        return

    if st.button("✨ পরামর্শ নিন", type="primary"):
        with st.spinner("বিশ্লেষণ চলছে..."):
            try:
                result = run_async(advisory.request_advice(transactions, state.currency))
            except AdvisoryLockedError as e:
                st.info(str(e))
                return
        if result.analysis:
            col1, col2 = st.columns(2)
            col1.metric("ছুটির দিনের খরচ", format_amount(result.analysis.weekend_spending, state.currency))
            col2.metric("দৈনিক গড়", format_amount(result.analysis.daily_average, state.currency))
        if result.ok:
            st.markdown(result.text)
        else:
            st.warning(result.text)


# =============================================================================
# SETTINGS
# =============================================================================

def render_settings_page(components: KhataComponents):
    store = components.store
    state = store.state
    portability = components.portability
    st.title("⚙️ সেটিংস")

    st.subheader("কারেন্সি")
    col1, col2 = st.columns(2)
    symbol = col1.text_input("চিহ্ন", value=state.currency.symbol)
    position = col2.radio(
        "অবস্থান", list(CurrencyPosition),
        index=list(CurrencyPosition).index(state.currency.position),
        format_func=lambda p: "আগে" if p == CurrencyPosition.PREFIX else "পরে",
        horizontal=True,
    )
    if (symbol, position) != (state.currency.symbol, state.currency.position) and symbol.strip():
        store.set_currency(symbol, position)
        st.rerun()

    st.subheader("থিম")
    dark = st.toggle("ডার্ক মোড", value=state.theme == Theme.DARK)
    if dark != (state.theme == Theme.DARK):
        store.toggle_theme()
        st.rerun()

    st.subheader("নোটিফিকেশন")
    labels = {
        "enable_daily_summary": "দৈনিক সারাংশ",
        "enable_budget_alerts": "বাজেট এলার্ট",
        "enable_reminders": "রিমাইন্ডার",
    }
    for key, label in labels.items():
        current = getattr(state.notification_settings, key)
        if st.toggle(label, value=current, key=key) != current:
            store.toggle_notification_preference(key)
            st.rerun()

    uploaded = st.file_uploader("রিমাইন্ডার সাউন্ড", type=["mp3", "wav", "ogg"])
    if uploaded and st.button("সাউন্ড সেভ করুন"):
        try:
            store.set_notification_sound(SoundKind.REMINDER, to_data_url(uploaded))
        except StoreError as e:
            st.error(str(e))

    st.subheader("ব্যাকআপ ও রিস্টোর")
    st.download_button(
        "📥 ব্যাকআপ ডাউনলোড",
        portability.export_backup().encode("utf-8"),
        file_name=portability.backup_file_name(),
        mime="application/json",
    )
    backup = st.file_uploader("ব্যাকআপ ফাইল", type=["json"])
    if backup and st.button("রিস্টোর করুন"):
        try:
            portability.restore(backup.getvalue().decode("utf-8"))
        except (InvalidBackupError, UnicodeDecodeError):
            st.error("ভুল ফাইল! সঠিক ব্যাকআপ ফাইল নির্বাচন করুন।")
        else:
            st.success("রিস্টোর সফল হয়েছে!")

    st.subheader("সিঙ্ক কোড")
    if st.button("কোড তৈরি করুন"):
        st.text_area("এই কোডটি অন্য ডিভাইসে পেস্ট করুন", portability.generate_sync_code(), height=150)

    st.subheader("সার্ভিস স্ট্যাটাস")
    status = validate_all_settings()
    for name, key in [("স্টোরেজ", "storage"), ("Gemini (AI পরামর্শ)", "gemini"), ("অ্যাপ", "app")]:
        if status.get(key, False):
            st.success(f"✅ {name}")
        else:
            st.error(f"❌ {name} - {status.get(f'{key}_error', 'Not configured')}")

    with st.expander("সাম্প্রতিক কার্যকলাপ"):
        sink = components.audit_logger.storage
        for event in sink.get_recent_events(20) if sink else []:
            st.caption(
                f"{event.timestamp:%Y-%m-%d %H:%M} · {event.description}"
            )


if __name__ == "__main__":
    main()
