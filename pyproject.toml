[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "camconv"
version = "0.1.0"
description = "Camera frame conversions: raw pixel formats to JPEG, BMP and RGB888"
requires-python = ">=3.10"
dependencies = []
keywords = ["jpeg", "bmp", "yuv", "rgb565", "camera", "image conversion"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Graphics :: Graphics Conversion",
]

[project.optional-dependencies]
test = ["pytest", "hypothesis"]

[tool.hatch.build.targets.wheel]
packages = ["camconv"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
