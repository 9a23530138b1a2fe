"""Setup cloud-functions-diagnostics."""

from setuptools import find_packages, setup

with open("README.md") as f:
    long_description = f.read()

inst_reqs = [
    "aws-lambda-powertools>=2.0.0",
    "httpx>=0.23.3",
    "pydantic>2",
    "pydantic-settings>=2.0",
    "starlette>=0.27",
]

extra_reqs = {
    "dev": ["python-dotenv"],
    "test": [
        "pytest",
        "pytest-asyncio",
        "pytest-cov",
        "httpx>=0.23.3",
    ],
}


setup(
    name="cloud-functions-diagnostics",
    version="0.1.0",
    description="Error reporting, session tracking and delivery flushing for serverless function handlers",
    long_description=long_description,
    long_description_content_type="text/markdown",
    python_requires=">=3.11",
    classifiers=[
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    keywords="serverless cloud-functions error-reporting asgi cloudevents",
    license="MIT",
    packages=find_packages(exclude=["ez_setup", "examples", "tests"]),
    include_package_data=True,
    zip_safe=False,
    install_requires=inst_reqs,
    extras_require=extra_reqs,
)
