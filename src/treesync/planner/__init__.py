from .assembler import apply_copy_filter, assemble, build_copy_intents
from .dataset import RecursiveCopyableDataset, find_datasets
from .lister import list_tree
from .reconciler import ReconcileResult, reconcile, same_file

__all__ = [
    "RecursiveCopyableDataset",
    "ReconcileResult",
    "apply_copy_filter",
    "assemble",
    "build_copy_intents",
    "find_datasets",
    "list_tree",
    "reconcile",
    "same_file",
]
