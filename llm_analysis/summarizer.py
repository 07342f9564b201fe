"""AI summarizer: scraped content in, free-text analysis out."""

import logging
from typing import Optional

from llm_analysis.adapter import BaseLLMAdapter
from llm_analysis.prompt_builder import AnalysisPromptBuilder
from llm_analysis.schema import AnalysisResult

logger = logging.getLogger(__name__)


class AISummarizer:
    """Runs one generation call per piece of content.

    Failures of the underlying adapter are returned as failed
    ``AnalysisResult`` values; nothing is raised past ``analyze``.
    """

    def __init__(
        self,
        adapter: BaseLLMAdapter,
        prompt_builder: Optional[AnalysisPromptBuilder] = None,
    ) -> None:
        self._adapter = adapter
        self._prompt_builder = prompt_builder or AnalysisPromptBuilder()

    @property
    def model(self) -> str:
        return self._adapter.model

    async def analyze(self, content: str) -> AnalysisResult:
        """Analyse scraped product content.

        Args:
            content: Raw scraped text; truncated by the prompt builder.

        Returns:
            A successful result carrying the generated text, or a failed
            result carrying the error message.
        """
        prompt = self._prompt_builder.build_prompt(content)
        try:
            text = await self._adapter.generate(prompt)
        except Exception as exc:
            reason = str(exc) or exc.__class__.__name__
            logger.warning("Analysis failed model=%s error=%s", self.model, reason)
            return AnalysisResult.failure(reason, model=self.model)

        return AnalysisResult(success=True, content=text, model=self.model)
