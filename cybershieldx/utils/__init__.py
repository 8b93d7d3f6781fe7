# cybershieldx/utils/__init__.py
