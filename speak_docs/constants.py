"""All magic strings, numbers and configuration defaults."""

HASH_MARKER = "speak-mintlify-hash"                    # annotation label inside {/* ... */}
DEFAULT_COMPONENT_NAME = "AudioTranscript"
DEFAULT_COMPONENT_IMPORT = "/snippets/audio-transcript.jsx"
DEFAULT_PATTERN = "**/*.mdx"                           # documents to narrate
DEFAULT_PATH_PREFIX = "audio"                          # storage key prefix
DEFAULT_S3_REGION = "us-east-1"
DEFAULT_BRANCH = "main"                                # fallback when git is unavailable
DEFAULT_IGNORE_PATTERNS = (
    "node_modules/**",
    "dist/**",
    ".git/**",
    "snippets/**",
)
IGNORE_FILENAME = ".speakignore"
CONFIG_FILENAME = "speaker-config.yaml"
VOICES_ATTRIBUTE = "voices"
PAYLOAD_INDENT = "  "                                  # extra indent for voice JSON lines
AUDIO_EXTENSION = ".mp3"
AUDIO_CONTENT_TYPE = "audio/mpeg"
S3_DELETE_BATCH_SIZE = 1000                            # DeleteObjects hard limit
TTS_RETRY_COUNT = 3                                    # max attempts per voice
TTS_RETRY_BASE_DELAY = 1.0                             # seconds, doubled per attempt
TTS_RATE = "+0%"                                       # edge-tts relative speech rate
VERSION = "0.1.0"
