DEFAULT_CONFIG = {
    "headless": True,
    "viewport": {"width": 1280, "height": 720},
    "language": "en-US",
}
