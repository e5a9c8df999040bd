"""
NodeVault - versioned, conflict-aware node backups
"""

from setuptools import setup, find_packages

setup(
    name="nodevault",
    version="0.1.0",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    python_requires=">=3.10",
    description="Versioned, conflict-aware backup and restore of node state on remote folder stores",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    license="MIT",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    install_requires=[
        "click>=8.0.0",
        "PyYAML>=6.0",
        "aiofiles>=23.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "black>=23.0.0",
            "mypy>=1.0.0",
        ],
        "s3": ["boto3>=1.26.0"],
    },
    entry_points={
        "console_scripts": [
            "nodevault=nodevault.cli:main",
        ],
    },
)
