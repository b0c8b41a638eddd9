"""Build the vtfloader package."""
from setuptools import find_packages, setup
import os

root = os.path.dirname(__file__)

with open(os.path.join(root, 'README.md'), encoding='utf8') as f:
    long_description = f.read()

setup(
    name='vtfloader',
    version='1.0.0',
    description='Decoder for Valve Texture Format (VTF) images.',
    long_description=long_description,
    long_description_content_type='text/markdown',
    license='LGPL-2.0-or-later',
    python_requires='>=3.8',
    package_dir={'': 'src'},
    packages=find_packages('src'),
    install_requires=[
        'attrs >= 21.3.0',
        'typing_extensions >= 4.6.0',
    ],
    extras_require={
        'pil': ['Pillow >= 9.0'],
        'test': ['pytest', 'Pillow >= 9.0'],
    },
)
