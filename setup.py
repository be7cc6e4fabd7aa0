"""Setup script for mdproviders."""

from setuptools import setup, find_packages

# Read long description from README
with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

# Read requirements
with open("requirements.txt", "r", encoding="utf-8") as fh:
    requirements = [line.strip() for line in fh if line.strip() and not line.startswith("#")]

setup(
    name="mdproviders",
    version="0.1.0",
    author="mdproviders Team",
    description="Historical quote providers for Yahoo! Finance, the ECB and MEFF",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(where=".", include=["mdproviders", "mdproviders.*"]),
    package_dir={"": "."},
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Financial and Insurance Industry",
        "License :: OSI Approved :: GNU Lesser General Public License v3 or later (LGPLv3+)",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Topic :: Office/Business :: Financial :: Investment",
    ],
    python_requires=">=3.9",
    install_requires=requirements,
    extras_require={
        "dev": ["pytest>=7.4.4", "black>=23.12.1", "mypy>=1.8.0"],
    },
    entry_points={
        "console_scripts": [
            "mdproviders=mdproviders.cli:main",
        ],
    },
)
