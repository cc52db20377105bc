"""Named constants — eliminates magic strings across the codebase."""

from __future__ import annotations

MAIN_FRAME_NAME = "main"
RETURN_VALUE_KEY = "return value"

PLACEHOLDER_VARIABLES: dict[str, str] = {"example": "value"}

DEFAULT_RECURSIVE_PARAM = "n"
DEFAULT_FACTORIAL_NAME = "factorial"
DEFAULT_FIBONACCI_NAME = "fib"
DEFAULT_DEMO_ARGUMENT = 5
MAX_FACTORIAL_ARGUMENT = 10
MAX_FIBONACCI_ARGUMENT = 6

DEFAULT_SORT_ARRAY: tuple[int, ...] = (12, 11, 13, 5, 6, 7)
DEFAULT_ARRAY_NAME = "arr"
DEFAULT_MERGE_SORT_NAME = "merge_sort"
DEFAULT_MERGE_NAME = "merge"
DEFAULT_PRINT_LIST_NAME = "print_list"

# Remote payload keys
TRACE_KEY = "executionTrace"
ALTERNATE_TRACE_KEYS: tuple[str, ...] = ("trace", "steps")
ANALYSIS_NESTED_KEY = "analysis"
ANSWER_KEY = "answer"

# Playback
BASE_INTERVAL_SECONDS = 1.0
DEFAULT_SPEED_MULTIPLIER = 1.0

# Remote service
PROVIDER_GROQ = "groq"
PROVIDER_OPENAI = "openai"
PROVIDER_CLAUDE = "claude"

GROQ_BASE_URL = "https://api.groq.com/openai/v1"
GROQ_DEFAULT_MODEL = "llama3-70b-8192"
OPENAI_DEFAULT_MODEL = "gpt-4o"
CLAUDE_DEFAULT_MODEL = "claude-sonnet-4-20250514"

PROVIDER_KEY_ENV: dict[str, str] = {
    PROVIDER_GROQ: "GROQ_API_KEY",
    PROVIDER_OPENAI: "OPENAI_API_KEY",
    PROVIDER_CLAUDE: "ANTHROPIC_API_KEY",
}

TRACE_TEMPERATURE = 0.2
ANALYSIS_TEMPERATURE = 0.2
ANSWER_TEMPERATURE = 0.3
TRACE_MAX_TOKENS = 4000
INSIGHT_MAX_TOKENS = 2000

NO_CREDENTIAL_MESSAGE = (
    "No API key is configured, and there is no offline answer for this "
    "question. Set an API key for the selected provider to ask free-form "
    "questions about the code."
)
REMOTE_UNAVAILABLE_MESSAGE = (
    "The remote service could not answer this question right now, and there "
    "is no offline answer for it. Try again, or rephrase the question."
)
EMPTY_QUESTION_MESSAGE = "Please enter a question."

SUPPORTED_LANGUAGES: tuple[str, ...] = ("python", "javascript", "java", "c")
