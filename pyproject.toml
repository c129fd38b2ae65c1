[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "sidengine"
version = "0.1.0"
description = "Building blocks of a SID music player engine: DAC and envelope models, filter routing, VIC-II timing, mixer, o65 relocator and PSID driver installer"
requires-python = ">=3.10"
keywords = ["sid", "c64", "commodore", "emulation", "chiptune", "vic-ii", "o65"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: System :: Emulators",
    "Topic :: Multimedia :: Sound/Audio :: Sound Synthesis",
]
dependencies = []

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["sidengine"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
