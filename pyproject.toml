[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "matools"
version = "0.1.0"
description = "Build-time asset converters for a small handheld arcade: PNG to fonts, images and splash screens, MIDI to compact song data."
requires-python = ">=3.10"
dependencies = []
keywords = ["png", "midi", "asset-pipeline", "game-assets", "font", "converter", "build-tools"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Build Tools",
    "Topic :: Multimedia :: Graphics :: Graphics Conversion",
    "Topic :: Multimedia :: Sound/Audio :: MIDI",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
mkbba = "matools.mkbba:main"
mkfont = "matools.mkfont:main"
mkimage = "matools.mkimage:main"
mktsv = "matools.mktsv:main"

[tool.hatch.build.targets.wheel]
packages = ["matools"]

[tool.pytest.ini_options]
addopts = "-ra"
