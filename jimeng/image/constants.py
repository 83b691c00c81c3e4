"""Service identifiers and static catalogs for Jimeng 3.0 image generation."""

REQ_KEY_T2I = "jimeng_t2i_v30"
REQ_KEY_I2I = "jimeng_i2i_v30"
REQ_KEYS = frozenset({REQ_KEY_T2I, REQ_KEY_I2I})

# Text-to-image recommended output sizes.
RECOMMENDED_SIZES = {
    "STANDARD_1K": {
        "1:1": {"width": 1328, "height": 1328},
        "4:3": {"width": 1472, "height": 1104},
        "3:2": {"width": 1584, "height": 1056},
        "16:9": {"width": 1664, "height": 936},
        "21:9": {"width": 2016, "height": 864},
    },
    "HD_2K": {
        "1:1": {"width": 2048, "height": 2048},
        "4:3": {"width": 2304, "height": 1728},
        "3:2": {"width": 2496, "height": 1664},
        "16:9": {"width": 2560, "height": 1440},
        "21:9": {"width": 3024, "height": 1296},
    },
}

I2I_RECOMMENDED_SIZES = {
    "1:1": {"width": 1328, "height": 1328},
    "4:3": {"width": 1472, "height": 1104},
    "3:2": {"width": 1584, "height": 1056},
    "16:9": {"width": 1664, "height": 936},
    "21:9": {"width": 2016, "height": 864},
}

# Covers the HD_2K catalog above; capped at the service resolution limit.
T2I_SIZE_RANGE = (512, 4096)
I2I_SIZE_RANGE = (512, 2016)
ASPECT_RATIO_RANGE = (1 / 3, 3.0)

WATERMARK_POSITIONS = {
    "BOTTOM_RIGHT": 0,
    "BOTTOM_LEFT": 1,
    "TOP_LEFT": 2,
    "TOP_RIGHT": 3,
}

WATERMARK_LANGUAGES = {
    "CHINESE": 0,
    "ENGLISH": 1,
}

SCALE_RANGE = {"MIN": 0.0, "MAX": 1.0, "DEFAULT": 0.5}

IMAGE_LIMITS = {
    "MAX_SIZE_MB": 4.7,
    "MAX_RESOLUTION": 4096,
    "MAX_ASPECT_RATIO": 3,
    "FORMATS": ["JPEG", "PNG"],
}

PROMPT_CONSTRAINTS = {
    "min_length": 1,
    "max_length": 800,
    "recommended_length": 120,
}

DEFAULT_SEED = -1
