"""Default configuration values shared across CLI, batch, and config files."""

# Subject detection
EDGE_THRESHOLD = 0.01
CONTRAST_WEIGHT = 0.3
COLOR_WEIGHT = 0.2
SALIENCY_WEIGHT = 0.5
MIN_SUBJECT_RATIO = 0.05
MAX_SUBJECTS = 10

# Cropping
ALLOW_UPSCALING = False
QUALITY_THRESHOLD = 0.7  # crops scoring below this are dropped from optimal crops

# Input validation
MIN_IMAGE_SIZE = 100
SUPPORTED_FORMATS = ('jpg', 'jpeg', 'png', 'webp')

# Output
JPEG_QUALITY = 85
OUTPUT_FORMAT = 'jpg'
OUTPUT_DIR = './output'
OUTPUT_PREFIX = ''
OUTPUT_SUFFIX = '_cropped'
