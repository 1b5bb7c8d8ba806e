from html import escape
from typing import Optional

from models.leaves import EscalationTier, LeaveCategory, LeaveRequest, LeaveStatus
from schemas.leave import MonthlyStats
from schemas.notification import InlineButton, InlineKeyboard
from utils.duration_utils import format_duration, format_number
from utils.time_utils import format_local

SEPARATOR = "------------------------------------"

CATEGORY_NAMES = {
    LeaveCategory.PERMISSION: "ច្បាប់ចេញក្រៅ",
    LeaveCategory.LEAVE: "ច្បាប់ឈប់សម្រាក",
    LeaveCategory.HOME_LEAVE: "ច្បាប់ទៅផ្ទះ",
}

KHMER_MONTHS = [
    "មករា", "កុម្ភៈ", "មីនា", "មេសា", "ឧសភា", "មិថុនា",
    "កក្កដា", "សីហា", "កញ្ញា", "តុលា", "វិច្ឆិកា", "ធ្នូ",
]

ESCALATION_HEADINGS = {
    EscalationTier.HALF_DAY_1: "⚠️ ហួសម៉ោងត្រឡប់មកវិញ (ម៉ោង 11:30)",
    EscalationTier.HALF_DAY_2: "🚨 នៅតែមិនទាន់ត្រឡប់មកវិញ (ម៉ោង 14:30)",
    EscalationTier.OVERDUE_TIME: "⚠️ ហួសម៉ោងត្រឡប់មកវិញ (ម៉ោង 18:00)",
    EscalationTier.OVERDUE_DAY: "🚨 មិនទាន់ត្រឡប់មកវិញ ហួសមួយថ្ងៃ",
}

NOT_FOUND_MESSAGE = "រកមិនឃើញសំណើនេះទេ។"
ALREADY_PROCESSED_MESSAGE = "សំណើនេះត្រូវបានសម្រេចរួចហើយ។"
ALREADY_CHECKED_IN_MESSAGE = "សំណើនេះបានចុះវត្តមានរួចហើយ។"
DUPLICATE_MESSAGE = "អត្តលេខ {employee_id} បានស្នើសុំ '{category}' សម្រាប់ថ្ងៃនេះរួចហើយ។"
NOT_APPROVED_MESSAGE = "សំណើនេះមិនទាន់ត្រូវបានអនុម័តទេ មិនអាចចុះវត្តមានបានឡើយ។"


def category_name(category: LeaveCategory) -> str:
    return CATEGORY_NAMES.get(LeaveCategory(category), str(category))


def month_label(reference) -> str:
    return f"{KHMER_MONTHS[reference.month - 1]} {reference.year}"


def link(url: str, label: str) -> str:
    return f'<a href="{escape(url, quote=True)}">{label}</a>'


def decision_keyboard(request_id: str, admin_key: str) -> InlineKeyboard:
    return InlineKeyboard(inline_keyboard=[[
        InlineButton(text="✅ យល់ព្រម", callback_data=f"approve_{request_id}_{admin_key}"),
        InlineButton(text="❌ បដិសេធ", callback_data=f"reject_{request_id}_{admin_key}"),
    ]])


def request_details(request: LeaveRequest) -> str:
    lines = [
        f"<b>ឈ្មោះ:</b> {escape(request.employee_name)} (ID: {escape(request.employee_id)})",
        f"<b>ប្រភេទច្បាប់:</b> {category_name(request.category)}",
        f"<b>ពីថ្ងៃ:</b> {request.start_date:%Y-%m-%d} <b>ដល់</b> {request.end_date:%Y-%m-%d}",
        f"<b>ចំនួន:</b> {escape(format_duration(request.duration_label or request.duration))}",
        f"<b>មូលហេតុ:</b> {escape(request.reason)}",
    ]
    if request.selfie_url:
        lines.append(f"<b>រូបថត:</b> {link(request.selfie_url, 'មើលរូបថត')}")
    if request.location_link:
        lines.append(f"<b>📍 ទីតាំង:</b> {link(request.location_link, 'ចុចមើលទីតាំង')}")
    for index, url in enumerate(request.document_urls, start=1):
        lines.append(f"<b>ឯកសារ {index}:</b> {link(url, 'មើលឯកសារ')}")
    if request.payment_receipt_url:
        lines.append(f"<b>វិក័យបត្រ:</b> {link(request.payment_receipt_url, 'មើលវិក័យបត្រ')}")
    return "\n".join(lines)


def stats_block(stats: MonthlyStats, reference) -> str:
    return "\n".join([
        f"<b>📊 ប្រវត្តិសុំច្បាប់ (បានអនុម័ត) {month_label(reference)}</b>",
        SEPARATOR,
        f"<b>- ចំនួនដងសរុប:</b> {stats.total_requests} ដង",
        f"<b>- ចំនួនថ្ងៃសរុប:</b> {format_number(stats.total_days)} ថ្ងៃ",
        f"<b>- ច្បាប់ចេញក្រៅ:</b> {stats.permission_count} ដង",
        f"<b>- ច្បាប់ឈប់សម្រាក:</b> {stats.leave_count} ដង",
    ])


def new_request_message(request: LeaveRequest, stats: MonthlyStats, reference, resubmitted: bool = False) -> str:
    heading = "<b>✏️ សំណើសុំច្បាប់ត្រូវបានកែប្រែ</b>" if resubmitted else "<b>📢 សំណើសុំច្បាប់ថ្មី</b>"
    return "\n".join([
        heading,
        SEPARATOR,
        request_details(request),
        "",
        stats_block(stats, reference),
        SEPARATOR,
        "សូមធ្វើការសម្រេចចិត្តខាងក្រោម 👇",
    ])


def decision_message(request: LeaveRequest) -> str:
    emoji = "✅" if request.status == LeaveStatus.APPROVED else "❌"
    lines = [
        f"<b>{emoji} សំណើច្បាប់ត្រូវបានសម្រេច</b>",
        SEPARATOR,
        f"<b>ឈ្មោះ:</b> {escape(request.employee_name)} (ID: {escape(request.employee_id)})",
        f"<b>Request ID:</b> {request.request_id}",
        f"<b>ស្ថានភាពថ្មី:</b> {request.status.value}",
        f"<b>សម្រេចដោយ:</b> {escape(request.approver or '')}",
    ]
    if request.status == LeaveStatus.REJECTED and request.rejection_reason:
        lines.append(f"<b>មូលហេតុ:</b> {escape(request.rejection_reason)}")
    lines.append(SEPARATOR)
    return "\n".join(lines)


def check_in_message(request: LeaveRequest, tz_name: str, actor: Optional[str] = None) -> str:
    lines = [
        "<b>🏁 បានចុះវត្តមានត្រឡប់មកវិញ</b>",
        SEPARATOR,
        f"<b>ឈ្មោះ:</b> {escape(request.employee_name)} (ID: {escape(request.employee_id)})",
        f"<b>Request ID:</b> {request.request_id}",
        f"<b>ម៉ោងចុះវត្តមាន:</b> {format_local(request.check_in_timestamp, tz_name)}",
    ]
    if request.check_in_photo_url:
        lines.append(f"<b>រូបថត:</b> {link(request.check_in_photo_url, 'មើលរូបថត')}")
    if request.check_in_location_link:
        lines.append(f"<b>📍 ទីតាំង:</b> {link(request.check_in_location_link, 'ចុចមើលទីតាំង')}")
    if actor:
        lines.append(f"<b>ចុះវត្តមានដោយ:</b> {escape(actor)}")
    if request.admin_checkin_note:
        lines.append(f"<b>កំណត់ចំណាំ:</b> {escape(request.admin_checkin_note)}")
    return "\n".join(lines)


def escalation_message(request: LeaveRequest, tier: EscalationTier, photo_url: str, tz_name: str) -> str:
    return "\n".join([
        f"<b>{ESCALATION_HEADINGS[EscalationTier(tier)]}</b>",
        SEPARATOR,
        f"<b>ឈ្មោះ:</b> {escape(request.employee_name)} (ID: {escape(request.employee_id)})",
        f"<b>មូលហេតុ:</b> {escape(request.reason)}",
        f"<b>ចំនួន:</b> {escape(format_duration(request.duration_label or request.duration))}",
        f"<b>អនុម័តនៅ:</b> {format_local(request.approval_timestamp, tz_name)}",
        f"<b>រូបថតបុគ្គលិក:</b> {link(photo_url, 'មើលរូបថត')}",
        SEPARATOR,
    ])


def system_health_message(operation: str, error: Exception) -> str:
    return "\n".join([
        "<b>🛠 បញ្ហាប្រព័ន្ធ</b>",
        SEPARATOR,
        f"<b>ប្រតិបត្តិការ:</b> {escape(operation)}",
        f"<b>កំហុស:</b> {escape(str(error))}",
    ])


def action_result_text(original_text: str, approved: bool, approver: str) -> str:
    verdict = "✅ Approved" if approved else "❌ Rejected"
    return f"{escape(original_text or '')}\n\n{SEPARATOR}\n<b>{verdict} by: {escape(approver)}</b>"


def action_failed_text(original_text: str, message: str) -> str:
    return f"{escape(original_text or '')}\n\n⚠️ Action Failed!\n{escape(message or 'Unknown error.')}"
