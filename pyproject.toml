[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "postkit"
version = "0.1.0"
description = "Digital cinema and IMF mastering toolkit: accessibility checks, EDL timelines, a version register, certificates, KDMs, colour transforms and JPEG 2000 encoding"
requires-python = ">=3.10"
dependencies = [
    "cryptography",
    "platformdirs",
    "numpy",
]
keywords = [
    "dcp",
    "imf",
    "digital-cinema",
    "post-production",
    "edl",
    "kdm",
    "x509",
    "jpeg2000",
    "ffmpeg",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Video",
    "Topic :: Multimedia :: Video :: Conversion",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["postkit"]

[tool.hatch.build.targets.sdist]
include = [
    "postkit",
    "tests",
]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]
