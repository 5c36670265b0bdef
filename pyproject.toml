[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "dsolvo"
version = "0.1.0"
description = "Building blocks for direct sparse visual odometry: pinhole cameras, frames and keyframes, direct photometric cost helpers and motion models"
requires-python = ">=3.10"
dependencies = [
    "numpy",
]
keywords = [
    "visual odometry",
    "direct method",
    "photometric alignment",
    "pinhole camera",
    "SE3",
    "computer vision",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Image Processing",
    "Topic :: Scientific/Engineering :: Mathematics",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["dsolvo"]

[tool.hatch.build.targets.sdist]
include = ["dsolvo", "tests"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 88
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
ignore_missing_imports = true
