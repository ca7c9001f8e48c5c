"""
Constants shared across the hand tracking pipeline.
"""

# ==================== CAMERA CONSTANTS ====================
DEFAULT_VIDEO_WIDTH = 640
DEFAULT_VIDEO_HEIGHT = 480
DEFAULT_FPS = 30
DEFAULT_FRAME_TIME = 1.0 / DEFAULT_FPS  # seconds

# ==================== SCENE CONSTANTS ====================
# Rendered surface defaults, used until the real size is known
DEFAULT_SCENE_WIDTH = 800
DEFAULT_SCENE_HEIGHT = 600

# Virtual interaction box (scene units)
VIRTUAL_SCENE_WIDTH = 80.0
VIRTUAL_SCENE_HEIGHT = 60.0
VIRTUAL_SCENE_DEPTH = 40.0

# Hand-reach derived interaction volume before any adaptation
DEFAULT_NATURAL_BOUNDARIES = {
    'min_x': -40.0, 'max_x': 40.0,
    'min_y': -30.0, 'max_y': 30.0,
    'min_z': -20.0, 'max_z': 20.0,
}
BOUNDARY_PADDING = 5.0

# Legacy proportional mapping defaults
LEGACY_SCENE_WIDTH = 100
LEGACY_SCENE_HEIGHT = 80

# ==================== GESTURE CONSTANTS ====================
NUM_LANDMARKS = 21
PINCH_THRESHOLD_PX = 30.0
PINCH_CONFIDENCE_RANGE_PX = 100.0
FINGER_EXTENSION_RATIO = 1.2
MAX_SMOOTHED_CONFIDENCE = 0.95

# Palm size range (pixels) used to estimate depth
PALM_SIZE_MIN_PX = 40.0
PALM_SIZE_RANGE_PX = 80.0

# ==================== TRACKING CONSTANTS ====================
DEFAULT_CONFIDENCE_THRESHOLD = 0.6
DEFAULT_SMOOTHING_FACTOR = 0.7
TRACKING_LOSS_GRACE_PERIOD = 1.0  # seconds
SINGULAR_DETERMINANT_EPSILON = 1e-10

# ==================== SEQUENCE CONSTANTS ====================
DEFAULT_COMBO_TIMEOUT_MS = 3000

# ==================== PERSISTENCE CONSTANTS ====================
CALIBRATION_STORAGE_KEY = 'adaptive_mapper_calibration'
DEFAULT_STORAGE_PATH = '~/.handtrack/storage.json'
