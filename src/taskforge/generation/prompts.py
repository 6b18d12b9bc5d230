"""Prompt construction for task breakdown generation."""

from ..errors import ValidationError
from ..models import DEFAULT_TEMPLATE_TYPE, GenerationRequest


# System instruction for the free-form chat endpoint
CHAT_SYSTEM_PROMPT = (
    "You are an expert Software Architect and Technical Lead. Your task is to "
    "break down feature requests into high-quality user stories and engineering "
    "tasks. Please limit the story under 10 lines only."
)

BREAKDOWN_PROMPT_TEMPLATE = '''You are an expert task breakdown specialist. Given a feature idea, break it down into actionable items.

Feature Goal: {feature_goal}
Target Users: {target_users}
Constraints: {constraints}
Template Type: {template_type}

Generate a comprehensive breakdown with:
1. 3-4 user stories (from user perspective)
2. 5-7 engineering tasks (technical implementation)
3. 2-3 risks or unknowns

Return ONLY a valid JSON array (no markdown, no code blocks) with objects containing:
{{
  "title": "string",
  "description": "string",
  "type": "user-story" | "engineering-task" | "risk" | "unknown",
  "priority": "low" | "medium" | "high",
  "difficulty": "easy" | "medium" | "hard",
  "estimatedHours": number (optional, for engineering tasks only)
}}

Important:
- Return valid JSON array only, nothing else
- Start with [ and end with ]
- Make sure all strings are properly escaped
- Do not include any markdown or code block markers'''


def validate_request(
    feature_goal: str | None,
    target_users: str | None,
    constraints: str | None,
    template_type: str | None = None,
) -> GenerationRequest:
    """Check the form inputs and normalize them into a GenerationRequest.

    Raises:
        ValidationError: If a required field is missing or whitespace-only.
    """
    required = {
        "featureGoal": feature_goal,
        "targetUsers": target_users,
        "constraints": constraints,
    }
    missing = [name for name, value in required.items() if not value or not value.strip()]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    if not template_type or not template_type.strip():
        template_type = DEFAULT_TEMPLATE_TYPE

    return GenerationRequest(
        feature_goal=feature_goal,
        target_users=target_users,
        constraints=constraints,
        template_type=template_type,
    )


def build_breakdown_prompt(request: GenerationRequest) -> str:
    """Build the generation instruction for a request.

    The inputs are embedded verbatim. The result is deterministic for a
    given request.

    Raises:
        ValidationError: If a required field is empty.
    """
    request = validate_request(
        request.feature_goal,
        request.target_users,
        request.constraints,
        request.template_type,
    )
    return BREAKDOWN_PROMPT_TEMPLATE.format(
        feature_goal=request.feature_goal,
        target_users=request.target_users,
        constraints=request.constraints,
        template_type=request.template_type,
    )
