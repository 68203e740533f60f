from setuptools import setup, find_packages

setup(
    name="evigraph",
    version="0.3.0",
    packages=find_packages(include=["evigraph", "evigraph.*"]),
    install_requires=[
        "openai>=1.0.0",
        "flask>=3.0.0",
        "flask-cors>=4.0.0",
        "python-dotenv>=1.0.0",
        "click>=8.1.0",
        "pydantic>=2.0.0",
        "rich>=13.0.0",
        "numpy>=1.24.0",
        "requests>=2.31.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.21.0",
            "hypothesis>=6.80.0",
            "httpx>=0.24.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "evigraph=evigraph.cli.main:main",
        ]
    },
    description="Evidence graph assembly engine: answers questions with cited, layered, similarity-linked evidence graphs.",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    license="MIT",
    python_requires=">=3.9",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Scientific/Engineering :: Artificial Intelligence",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
)
