[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "usbmoded"
version = "0.1.0"
description = "USB gadget mode management: settings storage, mode lists, android_usb and configfs gadget control"
requires-python = ">=3.10"
dependencies = []
keywords = ["usb", "gadget", "configfs", "android", "usb-mode", "ini"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Hardware :: Universal Serial Bus (USB) :: Miscellaneous",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["usbmoded"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
