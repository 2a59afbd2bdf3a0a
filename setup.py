from setuptools import setup

import os

HERE = os.path.abspath(os.path.dirname(__file__))

exc_folders = ['__pycache__', '__init__.py']
subpkgs = os.listdir(os.path.join(HERE,'tubeUnwrap3D'))
subpkgs = [pkg for pkg in subpkgs if pkg not in exc_folders]

with open(os.path.join(HERE, "requirements.txt"), "r") as fp:
    install_requires = [line for line in fp.read().splitlines() if len(line.strip()) > 0]

setup(name='tube-Unwrap3D',
	  version='0.1.0',
	  description='Temporally stabilized cut-mesh pullbacks, azimuthal registration and polar writhe of deforming tubular surfaces',
	  author='tubeUnwrap3D developers',
	  packages=['tubeUnwrap3D'] + ['tubeUnwrap3D.'+ pkg for pkg in subpkgs],
	  include_package_data=True,
	  install_requires=install_requires,
	  extras_require={'test': ['pytest']},
)
