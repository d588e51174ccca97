"""
kubebridge - map typed models onto Kubernetes objects of any kind.

This package provides a generic resource engine with:
- Identity tokens of the form name or name/namespace
- REST resolution from fresh discovery data, CRDs included
- Conversion between pydantic models and unstructured manifests
- Create/Read/Update/Delete with deadlines and wait-for-deletion
"""

__version__ = "0.1.0"
