"""
Constants and presets for transcoding operations.
"""

# Constant-bitrate rate control: fixed GOP, no scene-cut keyframes, CBR HRD
VIDEO_ENCODER = "libx264"
X264_PARAMS_TEMPLATE = "keyint={keyint}:min-keyint={keyint}:scenecut=-1:nal-hrd=cbr"
BUFSIZE_FACTOR = 2

AUDIO_ENCODER = "aac"

FRAGMENT_DURATION_MS = 2000

# Keep only the tail of stderr for error reports
STDERR_TAIL_LINES = 100
ERROR_DETAIL_CHARS = 1000

# Progress is logged at these percentage steps
PROGRESS_LOG_STEP = 10.0

# Graceful termination timeouts (seconds)
TERMINATE_GRACE = 5.0
TERMINATE_ESCALATE = 3.0
STALL_POLL_INTERVAL = 1.0
READ_CHUNK_SIZE = 4096
