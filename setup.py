from setuptools import find_packages, setup

package_name = "grid_compositor"

setup(
    name=package_name,
    version="0.1.0",
    packages=find_packages(exclude=["test"]),
    data_files=[
        ("share/ament_index/resource_index/packages", ["resource/" + package_name]),
        ("share/" + package_name, ["package.xml"]),
        (
            "share/" + package_name + "/launch",
            [
                "launch/occupancy_grid.launch.py",
            ],
        ),
        (
            "share/" + package_name + "/config",
            [
                "config/occupancy_grid.yaml",
            ],
        ),
    ],
    install_requires=["setuptools", "numpy", "scipy", "pydantic>=2", "pyyaml"],
    extras_require={"test": ["pytest"]},
    zip_safe=True,
    maintainer="Will Haber",
    maintainer_email="whab13@mit.edu",
    description="Composites versioned submap textures into a world-frame occupancy grid (ROS 2 Jazzy)",
    license="Apache-2.0",
    tests_require=["pytest"],
    entry_points={
        "console_scripts": [
            "occupancy_grid_node = grid_compositor.backend.occupancy_grid_node:main",
        ],
    },
)
