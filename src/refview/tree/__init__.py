"""Reference tree construction."""

from .builder import build_tree, group_by_path, iter_file_nodes

__all__ = ["build_tree", "group_by_path", "iter_file_nodes"]
