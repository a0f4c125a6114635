import math

# Render defaults
WIDTH, HEIGHT = 1024, 768
FOV = 1.8  # vertical, radians
MAX_DEPTH = 5
BACKGROUND_COLOR = (0.8, 0.8, 1.0)
EPSILON = 1e-3
MAX_DISTANCE = 1000.0
CAMERA_ORIGIN = (0.0, 0.0, 0.0)
ROWS_PER_BATCH = 64

# Scene limits
MAX_OBJECTS = 256
MAX_LIGHTS = 16
MAX_MATERIALS = 64

# Object variant tags
OBJ_SPHERE = 0
OBJ_CUBOID = 1

# Material defaults
DEFAULT_SPECULAR_COEF = 0.0
DEFAULT_PHONG_EXP = 10.0
DEFAULT_REFLEX_COEF = 0.0
DEFAULT_REFRACT_COEF = 1.0
DEFAULT_OPACITY = 1.0

# Below this length a vector is treated as zero
DEGENERATE_LENGTH = 1e-12

MAX_FOV = math.pi
