from setuptools import setup, find_packages

setup(
    name="zvote-client",
    version="1.0.0",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    include_package_data=True,
    package_data={"zvote_client": ["abi/*.json"]},
    install_requires=[
        "web3>=7.0.0",
        "eth-account>=0.13.0",
        "eth-utils>=4.0.0",
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        "pyignite[async]>=0.6.0",
        "httpx>=0.24.0",
        "click>=8.0.0",
        "python-json-logger>=2.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "zvote = zvote_client.cli:cli",
        ],
    },
    python_requires=">=3.10",
    author="zVote Team",
    description="Encrypted voting client: vote encryption, proposal tracking and creator-only result decryption",
)
