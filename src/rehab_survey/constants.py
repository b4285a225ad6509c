"""Survey constants shared across the SDK.

These values are referenced by the visibility evaluator, the controller,
the result router and the free-chat responder.  They mirror conventions
of the remote step service (step ids, condition tags, wire input types).

Step ids can be overridden via environment variables so that deployments
can follow a renumbered step definition without code changes.
"""

import os

# Wire ``input_type`` → internal input kind.  Kinds already in internal
# form pass through unchanged.
WIRE_INPUT_KINDS: dict[str, str] = {
    "single_choice": "single_choice",
    "multi_choice": "multi_choice",
    "number": "numeric",
    "numeric": "numeric",
    "yes_no": "boolean",
    "boolean": "boolean",
    "form": "composite_form",
    "composite_form": "composite_form",
    "info": "terminal",
    "terminal": "terminal",
}

# Options offered for boolean steps that arrive without an option list.
DEFAULT_BOOLEAN_OPTIONS: list[tuple[str, str]] = [("yes", "예"), ("no", "아니오")]

# Prior steps that composite-form visibility conditions look at.
HOUSING_STEP_ID = os.getenv("SURVEY_HOUSING_STEP_ID", "step_03_housing")
ASSETS_STEP_ID = os.getenv("SURVEY_ASSETS_STEP_ID", "step_07_assets")
RETIREMENT_STEP_ID = os.getenv("SURVEY_RETIREMENT_STEP_ID", "step_08_retirement")

# Condition tag → (operator, step id, expected value).
#   eq:       the step's single-choice answer equals the value
#   contains: the value is a member of the step's multi-choice answer
VISIBILITY_RULES: dict[str, tuple[str, str, str]] = {
    "rent_deposit": ("eq", HOUSING_STEP_ID, "rent_deposit"),
    "housing_owned": ("eq", HOUSING_STEP_ID, "owned"),
    "deposit_over": ("contains", ASSETS_STEP_ID, "deposit_over"),
    "insurance_savings": ("contains", ASSETS_STEP_ID, "insurance_savings"),
    "securities": ("contains", ASSETS_STEP_ID, "securities"),
    "crypto": ("contains", ASSETS_STEP_ID, "crypto"),
    "vehicle": ("contains", ASSETS_STEP_ID, "vehicle"),
    "retirement_fund": ("eq", RETIREMENT_STEP_ID, "retirement_fund"),
}

# Captions cycled while the scoring call is pending.
PROGRESS_CAPTIONS: list[str] = [
    "재산 정보 확인 중...",
    "청산가치 계산 중...",
    "가용소득 산정 중...",
    "변제율 시뮬레이션 중...",
    "최종 결과 생성 중...",
]

# Free-chat decision table: (template name, keywords).  Order matters;
# the first row with a keyword contained in the lowercased query wins.
CHAT_KEYWORD_TABLE: list[tuple[str, tuple[str, ...]]] = [
    ("documents", ("서류",)),
    ("refund", ("환불", "기각")),
    ("gambling_investment", ("도박", "주식", "코인")),
    ("cost", ("비용", "가격", "얼마")),
    ("duration", ("기간", "얼마나 걸")),
    ("credit_score", ("신용", "등급")),
]

# Repayment-rate band edges (percent) for the free-chat fallback.
LOW_RATE_THRESHOLD = 20.0
HIGH_RATE_THRESHOLD = 50.0

# Separator between option labels in a multi-choice participant echo.
MULTI_CHOICE_SEPARATOR = ", "

# Participant echo for a submitted composite form.
FORM_SUBMITTED_TEXT = "재산 정보 입력 완료"

# User-facing assistant messages for each network failure kind.
ERROR_MESSAGES: dict[str, str] = {
    "create": "서버 연결에 실패했습니다. 잠시 후 다시 시도해주세요.",
    "step": "단계를 불러오는데 실패했습니다.",
    "submit": "죄송합니다. 오류가 발생했습니다. 다시 시도해주세요.",
    "compute": "결과 계산 중 오류가 발생했습니다. 다시 시도해주세요.",
}
