from setuptools import setup, find_packages
from pathlib import Path

package_name = 'k8s-deletion-inspector'
description = (
    'Finds Kubernetes objects stuck in a terminating state and force '
    'deletes them once they have been stuck for too long.'
)
author = 'k8s-deletion-inspector developers'
license = 'MIT'
pypi_classifiers = [
    'Development Status :: 4 - Beta',
    'License :: OSI Approved :: MIT License',
    'Programming Language :: Python :: 3.10',
    'Programming Language :: Python :: 3.11',
    'Programming Language :: Python :: 3.12',
]
keywords = ['kubernetes', 'finalizers']
readme = Path(__file__).parent / 'README.rst'

# Core dependencies
install_requires = [
    'click>=8.1',
    'fastapi>=0.110',
    'kubernetes>=29.0.0',
    'prometheus-client>=0.19',
    'structlog>=23.1',
    'uvicorn>=0.27',
]

# Test dependencies
tests_require = [
    'httpx>=0.27',
    'pytest>=7.4',
    'PyYAML>=6.0',
    'urllib3>=1.26',
]
tests_require += install_requires

# Optional dependencies (like for dev)
extras_require = {
    'test': tests_require,
    # For development environments
    'dev': tests_require,
}

setup(
    name=package_name,
    version='0.1.0',
    description=description,
    long_description=readme.read_text(),
    long_description_content_type='text/x-rst',
    author=author,
    license=license,
    classifiers=pypi_classifiers,
    keywords=keywords,
    package_dir={'': 'src'},
    packages=find_packages('src', exclude=['docs', 'tests']),
    python_requires='>=3.10',
    install_requires=install_requires,
    extras_require=extras_require,
    entry_points={
        'console_scripts': [
            'k8s-deletion-inspector = k8sdeletioninspector.cli:main',
        ],
    },
    include_package_data=True
)
