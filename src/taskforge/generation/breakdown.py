"""AI-driven task breakdown from a feature idea.

Builds the prompt, calls the text model once, and validates the response.
Nothing is persisted here; the caller decides what to do with the result.
"""

import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..errors import GenerationFailed, ParseError
from ..generation_logger import GenerationLogger
from ..models import GeneratedTask, GenerationRequest, QuarantinedRecord
from ..protocols import TextModel
from .parser import parse_response
from .prompts import build_breakdown_prompt


@dataclass
class GeneratedBreakdown:
    """Result of generating a breakdown for one request."""

    request: GenerationRequest
    tasks: list[GeneratedTask]
    model_used: str
    quarantined: list[QuarantinedRecord] = field(default_factory=list)
    generation_time: datetime = field(default_factory=datetime.now)
    raw_response: str = ""

    @property
    def task_count(self) -> int:
        return len(self.tasks)


class TaskBreakdownGenerator:
    """Generates task breakdowns using a hosted text model."""

    def __init__(self, model: TextModel, model_name: str):
        """Initialize the generator.

        Args:
            model: Text-generation client.
            model_name: Model identifier sent with every request.
        """
        self.model = model
        self.model_name = model_name

    async def generate(
        self,
        request: GenerationRequest,
        logger: Optional[GenerationLogger] = None,
    ) -> GeneratedBreakdown:
        """Generate a breakdown for a request.

        Args:
            request: The validated form inputs.
            logger: Run logger (optional).

        Returns:
            GeneratedBreakdown with the accepted tasks in model order.

        Raises:
            ValidationError: If a required input is empty.
            GenerationFailed: If the model call fails.
            ParseError: If the response contains no usable task array.
        """
        logger = logger or GenerationLogger(None)

        prompt = build_breakdown_prompt(request)
        logger.log_prompt(prompt)

        started = time.monotonic()
        try:
            response = await self.model.generate(prompt, model=self.model_name)
        except GenerationFailed as e:
            logger.log_error("GenerationFailed", e.message, raw_error=repr(e.__cause__))
            raise
        logger.log_model_response(response, duration_ms=int((time.monotonic() - started) * 1000))

        try:
            parsed = parse_response(response)
        except ParseError as e:
            logger.log_error("ParseError", e.message, raw_error=repr(e.__cause__))
            raise

        logger.log_parse_result(
            accepted=parsed.accepted_count,
            quarantined=[q.model_dump() for q in parsed.quarantined],
        )

        return GeneratedBreakdown(
            request=request,
            tasks=parsed.tasks,
            model_used=self.model_name,
            quarantined=parsed.quarantined,
            raw_response=response,
        )
