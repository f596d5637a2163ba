from setuptools import setup, find_packages
setup(
    name='asset-forge',
    version='0.1.0',
    package_dir={'': 'src'},
    packages=find_packages(where='src'),
    include_package_data=True,
    package_data={
        'asset_forge': [
            'build/plugins/*.yaml',
            'run/config/*.ini',
        ],
    },
    description='Incremental asset pipeline: watch sources, run transform plugins, join bundles.',
    author='Your Name',
    author_email='youremail@example.com',
    python_requires='>=3.9',
    install_requires=[
        'invoke>=2.0.0',
        'pyyaml>=6.0',
        'pydantic>=2.0.0',
        'watchdog>=3.0.0',
    ],
    extras_require={
        'test': [
            'pytest>=7.0.0',
        ],
    },
    entry_points={
        'console_scripts': [
            'asset-forge = asset_forge.cli:main',
        ],
    },
)
