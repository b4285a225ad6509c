"""Wire-shaped step builders shared by the tests."""


def single_choice(step_id, *values, title="질문"):
    return {
        "step_id": step_id,
        "title": title,
        "question": f"{title}?",
        "input_type": "single_choice",
        "options": [{"value": v, "label": f"{v} 라벨"} for v in values],
    }


def multi_choice(step_id, *values, title="질문"):
    step = single_choice(step_id, *values, title=title)
    step["input_type"] = "multi_choice"
    return step


def numeric(step_id, title="금액"):
    return {
        "step_id": step_id,
        "title": title,
        "question": f"{title}을 입력해주세요.",
        "input_type": "number",
    }


def yes_no(step_id, title="여부", options=None):
    return {
        "step_id": step_id,
        "title": title,
        "question": f"{title}?",
        "input_type": "yes_no",
        "options": options,
    }


def form(step_id, *fields, title="재산"):
    return {
        "step_id": step_id,
        "title": title,
        "question": f"{title}을 입력해주세요.",
        "input_type": "form",
        "validation": {"fields": list(fields)},
    }


def field(field_id, label=None, *, required=False, group=None, condition=None):
    return {
        "id": field_id,
        "label": label or field_id,
        "required": required,
        "group": group,
        "condition": condition,
    }
