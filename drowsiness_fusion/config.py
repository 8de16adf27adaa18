"""
Configuration file for all drowsiness fusion thresholds and settings

Every value here is a default. Components accept the same values as keyword
arguments, and the engine exposes setters for the ones that change at runtime.
All durations are in seconds.
"""

# Initial alert thresholds (replaced by calibration)
EYE_THRESHOLD = 0.28                  # Combined closed-eye score above this => eyes closed
YAWN_THRESHOLD = 0.80                 # Combined yawn score above this => frame qualifies

# Classifier output contract (fixed by the installed model)
EYE_CLASS_INDEX = 0                   # Probability the eye is closed
YAWN_CLASS_INDEX = 3                  # Probability of yawning

# Region geometry (pixels)
EYE_HALF_WIDTH_FACTOR = 0.95          # Half-width = factor * inter-eye distance
EYE_HALF_HEIGHT_FACTOR = 0.6          # Half-height = factor * inter-eye distance
EYE_MIN_HALF_WIDTH = 18
EYE_MIN_HALF_HEIGHT = 12
EYE_FALLBACK_HEIGHT_RATIO = 0.28      # Top 28% of the face box when eye landmarks are missing
MOUTH_SIDE_PADDING = 14               # Added left/right of the mouth corners
MOUTH_MIN_SPAN = 8
MOUTH_ABOVE_SPAN = 1.5                # Top = mouthBottom.y - 1.5 * span
MOUTH_BELOW_SPAN = 1.3                # Bottom = mouthBottom.y + 1.3 * span
MOUTH_FALLBACK_HEIGHT_RATIO = 0.60    # Bottom 60% of the face box when mouth landmarks are missing
MIN_FACE_BOX_HEIGHT = 10

# Per-eye crops
PER_EYE_MIN_DISTANCE = 20
PER_EYE_WIDTH_FACTOR = 0.95
PER_EYE_HEIGHT_FACTOR = 0.85
PER_EYE_MIN_WIDTH = 28
PER_EYE_MIN_HEIGHT = 20
MIN_EYE_CROP_SIDE = 12                # Crops at or below this are too small to classify

# Mouth inference gating
MOUTH_CLASSIFY_EVERY_N = 2            # Classify the mouth on every Nth frame
MIN_MOUTH_CROP_WIDTH = 18
MIN_MOUTH_CROP_HEIGHT = 12
MIN_FACE_SIDE_FOR_MOUTH = 110         # Face height or width must reach this for mouth inference

# Smoothing
EYE_EMA_ALPHA = 0.38
MOUTH_EMA_ALPHA = 0.30
MOUTH_MIN_RAW_SIGNAL = 0.12           # Raw mouth values below this decay instead of averaging
MOUTH_DECAY_FACTOR = 0.82
MOUTH_STALE_SECONDS = 0.7             # Decay the mouth EMA when the last inference is older
EMA_ZERO_SNAP = 0.03                  # EMA values below this snap to zero after a decay
FACE_LOST_RESET_SECONDS = 1.5         # Zero both EMAs after the face is gone this long

# Signal fusion
EYE_EMA_PRESENT_MIN = 0.02            # Eye EMA at or below this counts as unavailable
EYE_MODEL_WEIGHT = 0.85               # Weight of the model EMA vs detector-native estimate
MOUTH_MODEL_WEIGHT = 0.75             # Weight of the model EMA vs mouth geometry
MOUTH_ASPECT_DIVISOR = 0.35           # Geometric score = mouthHeight / (faceHeight * k); larger k is stricter
MIN_YAWN_WIDTH_RATIO = 0.22           # Mouth width must be >= ratio * faceWidth ...
MIN_YAWN_WIDTH_PX = 30                # ... and at least this many pixels

# Event confirmation
EYE_CLOSED_SECONDS = 0.9              # Score above threshold this long => eye alert
YAWN_CONSECUTIVE_REQUIRED = 2         # Consecutive qualifying frames before a yawn is confirmed
YAWN_EVENT_GAP_SECONDS = 2.0          # Minimum gap between two confirmed yawns
YAWN_EVENTS_FOR_ALERT = 5             # Confirmed yawns that raise the yawn alert
LOST_FACE_ALERT_SECONDS = 5.0         # Face missing this long => lost-face alert
MIN_FACE_AREA = 90 * 90               # Smaller faces are not usable for scoring
WARMUP_FRAMES = 8                     # Yawn counting is suppressed for the first N frames

# Calibration
CALIBRATE_ON_START = True
CALIBRATION_FRAMES = 120
CALIBRATION_EYE_K = 2.75              # Eye threshold = mean + k * stddev
CALIBRATION_EYE_FLOOR = 0.18
CALIBRATION_YAWN_FACTOR = 0.65        # Yawn threshold = peak * factor
CALIBRATION_YAWN_FLOOR = 0.28

# Alert escalation
ESCALATION_COUNTDOWN_SECONDS = 2.0    # Pending alert is dispatched unless cancelled within this window

# Classifier worker
CLASSIFIER_TIMEOUT_SECONDS = 0.5      # A worker call slower than this counts as a failed classification

# Eye openness from geometry (MediaPipe adapter)
EAR_CLOSED = 0.16                     # EAR at or below => openness 0
EAR_OPEN = 0.30                       # EAR at or above => openness 1

# Camera settings
CAMERA_INDEX = 0
FRAME_WIDTH = 640
FRAME_HEIGHT = 480
TARGET_FPS = 30

# Camera backend (mainly for Windows reliability)
# Options: "AUTO", "DSHOW", "MSMF"
CAMERA_BACKEND = "AUTO"

# How many camera indices to probe if CAMERA_INDEX fails (0..N-1)
CAMERA_PROBE_COUNT = 4

# Transports
TELEGRAM_TIMEOUT_SECONDS = 7.0
ALERT_BEEP_FREQUENCY_HZ = 1000
ALERT_BEEP_SECONDS = 0.3

# Supabase Cloud Integration Configuration
# Set these via environment variables: SUPABASE_URL and SUPABASE_KEY
# Or pass them when initializing SupabaseLogger
SUPABASE_ENABLED = True  # Set to False to disable cloud logging
SUPABASE_SNAPSHOT_INTERVAL_SECONDS = 5  # Log snapshot every N seconds (reduces data volume)
