[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "jetcar"
version = "1.0.0"
description = "Joystick control transmission and on-board motor, servo, battery and CAN handling for a small model car"
requires-python = ">=3.10"
keywords = ["robotics", "zeromq", "joystick", "i2c", "pca9685", "can", "mcp2515", "model-car"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Interface Engine/Protocol Translator",
]
dependencies = [
    "pyzmq",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
jetcar-controller = "jetcar.transmitter:main"

[tool.hatch.build.targets.wheel]
packages = ["jetcar"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
