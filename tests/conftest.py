pytest_plugins = ['patchkit.pytest_plugin']
