"""Semantic analyzers: call graph, data flow, similarity, concepts and quality."""

from .analyzer import SemanticAnalyzer
from .call_graph import CallGraph, CallGraphNode, CallResolver, build_call_graph
from .concepts import ConceptExtractor, ConceptOccurrence, ConceptSource
from .data_flow import DataFlowAnalyzer, DataFlowNode
from .quality import QualityAnalyzer, QualityIssue, QualityIssueType, QualitySeverity
from .similarity import SimilarityAnalyzer, SimilarityPair, cosine_similarity

__all__ = [
    "SemanticAnalyzer",
    "CallGraph",
    "CallGraphNode",
    "CallResolver",
    "build_call_graph",
    "ConceptExtractor",
    "ConceptOccurrence",
    "ConceptSource",
    "DataFlowAnalyzer",
    "DataFlowNode",
    "QualityAnalyzer",
    "QualityIssue",
    "QualityIssueType",
    "QualitySeverity",
    "SimilarityAnalyzer",
    "SimilarityPair",
    "cosine_similarity",
]
