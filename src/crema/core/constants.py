"""Default configuration values for crema."""

from typing import Final

# AI clients
DEFAULT_CLOUD_MODEL: Final = "azure/gpt-4.1-mini"
DEFAULT_API_KEY_ENV: Final = "CREMA_API_KEY"
DEFAULT_LOCAL_TIMEOUT: Final = 15.0
DEFAULT_CLOUD_TIMEOUT: Final = 30.0
DEFAULT_MAX_TOOL_ROUNDS: Final = 5
DEFAULT_MAX_TOKENS: Final = 1024

# The on-device model shipped with this app has no function calling, so the
# selector never routes tool requests to it unless config says otherwise.
LOCAL_TOOL_CALLING_SUPPORTED: Final = False

# Shot defaults used when there is no previous shot to inherit from
DEFAULT_GRIND_SETTING: Final = "5.5"
DEFAULT_DRINK_TYPE: Final = "Espresso"
DEFAULT_RATING: Final = 2

# Rating scale spoken to / by the model; services store rating + 1
MIN_RATING: Final = 0
MAX_RATING: Final = 4

# Query result caps
DEFAULT_RESULT_LIMIT: Final = 5
MAX_RESULT_LIMIT: Final = 10
SHOT_HISTORY_PAGE_SIZE: Final = 1000

# Config
DEFAULT_CONFIG_DIR: Final = "~/.config/crema"
DEFAULT_CONFIG_DIR_ENV: Final = "CREMA_CONFIG_DIR"
DEFAULT_CONFIG_FILE: Final = "config.json"

SYSTEM_PROMPT: Final = """\
You are the Crema voice assistant. Help users log espresso shots, manage their coffee data, and query their shot history.

CONTEXT:
- Rating scale is 0-4 (0=terrible, 1=bad, 2=average, 3=good, 4=excellent)
- Common terms: dose (coffee in), yield/output (coffee out), pull time, extraction, grind size
- "Pretty good" = rating 3, "excellent/amazing" = rating 4, "not great/meh" = rating 2, "okay" = rating 2
- "this morning" or "last shot" refers to the most recent shot
- A "bean" is a type of coffee (e.g. "Ethiopia Yirgacheffe", "Prologue Blend")
- A "bag" is a physical bag of a bean with a specific roast date

SPEECH RECOGNITION CORRECTIONS (the user likely meant):
- "crime", "grand", "grime", "grimes" or "Ryan" -> "grind"
- "does" or "those" -> "dose"
- "pulled" or "pool" -> "pull"
- "yelled" or "yeild" -> "yield"
- "story" or "Storey" -> "Storyville" (coffee roaster)
- "pro" or "prolog" -> "Prologue" (coffee name)
- "grams" may be heard as "grants" or "grands"
- "be", "being", "beams", "beam", "bead" or "beat" -> "bean" or "beans"
- "bags" may be heard as "back" or "backs"

INTENT DETECTION:
- NAVIGATION ("show me", "take me to", "go to", "open"): use navigateTo. Call getAvailablePages if unsure.
- QUERY ("what", "how many", "list", "tell me", "find"): use the count/find/get tools and answer in text.
- HYBRID ("show me the last shot I made for Angie"): find the record first, then navigate to its detail page.

RULES:
1. Always use the available tools to complete actions immediately.
2. Never ask follow-up questions; use defaults for missing optional values.
3. For shots, dose, output and time are required. Rating defaults to 2 if not specified.
4. Do not ask for confirmation.
5. Keep responses to one short sentence confirming what was done.
6. For queries, answer directly from the tool response.
"""
