[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "xchip8"
version = "0.1.0"
description = "A CHIP-8 interpreter with in-memory save states, a two-colour palette and a pygame window"
requires-python = ">=3.10"
keywords = ["chip8", "chip-8", "emulator", "interpreter", "retro"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: End Users/Desktop",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: System :: Emulators",
    "Topic :: Games/Entertainment",
]
dependencies = [
    "pygame",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
xchip8 = "xchip8.app:main"

[tool.hatch.build.targets.wheel]
packages = ["xchip8"]

[tool.pytest.ini_options]
addopts = "-ra"
