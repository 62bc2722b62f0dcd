from setuptools import setup, find_packages

setup(
    name='eksdeploy',
    version='0.1.0',
    packages=find_packages(include=['eksdeploy', 'eksdeploy.*']),
    include_package_data=True,
    install_requires=[
        'typer[all]',
        'kubernetes',
        'urllib3',
        'pydantic>=2',
        'pyyaml',
        'python-dotenv',
        'requests',
        'tenacity',
    ],
    extras_require={
        'dev': [
            'pytest',
            'pytest-cov',
        ],
    },
    entry_points={
        'console_scripts': [
            'eksdeploy=eksdeploy.cli:run_cli'
        ]
    },
    author='Your Name',
    description='A CLI that installs tooling, publishes an image to ECR and provisions an EKS cluster',
    classifiers=[
        'Programming Language :: Python :: 3',
        'Operating System :: POSIX :: Linux',
    ],
    python_requires='>=3.8',
)
