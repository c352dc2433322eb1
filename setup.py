"""
Setup file.
"""

import os

from setuptools import find_packages, setup

URL = "https://github.com/avalon-audio/avalonbuild"
KEYWORDS = "embedded firmware toolchain linker makefile raspberry-pi bare-metal tftp"
HERE = os.path.dirname(os.path.abspath(__file__))

INSTALL_REQUIRES = [
    "requests>=2.31.0",
    "tqdm>=4.66.0",
    "psutil>=5.9.0",
]

TEST_REQUIRES = [
    "pytest>=7.4.0",
]


if __name__ == "__main__":
    setup(
        name="avalonbuild",
        version="0.1.0",
        description="Firmware build tool for Avalon hardware targets",
        keywords=KEYWORDS,
        url=URL,
        python_requires=">=3.10",
        package_dir={"": "src"},
        packages=find_packages(where="src"),
        install_requires=INSTALL_REQUIRES,
        extras_require={"test": TEST_REQUIRES},
        entry_points={"console_scripts": ["avalon = avalonbuild.cli:main"]},
        package_data={"avalonbuild": ["resources/*/*.zip", "resources/*/*.txt"]},
        include_package_data=True)
