"""In-memory full-text index over nodes."""
import logging
import math
from collections import Counter
from typing import Dict, Iterable, List, Union

from .matching import bounded_levenshtein, max_edit_distance, tokenize
from ..models.node import Node, SearchOptions, SearchResult

logger = logging.getLogger(__name__)

FIELDS = ("raw_text", "tags")

# BM25+ parameters
K1 = 1.2
B = 0.7
DELTA = 0.5

PREFIX_WEIGHT = 0.375
FUZZY_WEIGHT = 0.45


def field_tokens(node: Node, field: str) -> List[str]:
    """Tokens of one indexed field of a node."""
    if field == "tags":
        return [token for tag in node.tags for token in tokenize(tag)]
    return tokenize(node.raw_text)


class SearchIndex:
    """Ranked keyword search over ``raw_text`` and ``tags``.

    Each field is scored with BM25+ and multiplied by its boost; tags are
    boosted so a tag hit outranks the same word in the text. Query terms also
    match indexed terms they are a prefix of, and terms within a small edit
    distance, at reduced weight. Scores of all query terms are summed.

    The index is not tied to a store. Callers add, update and remove nodes
    explicitly.
    """

    def __init__(
        self,
        tag_boost: float = 2.0,
        fuzzy: Union[bool, float] = 0.2,
        prefix: bool = True,
    ):
        """Initialize search index.

        Args:
            tag_boost: Score multiplier for the tags field
            fuzzy: Fuzzy matching setting, see ``max_edit_distance``
            prefix: Whether query terms match as prefixes
        """
        self.boosts: Dict[str, float] = {"raw_text": 1.0, "tags": tag_boost}
        self.fuzzy = fuzzy
        self.prefix = prefix

        self._docs: Dict[str, Node] = {}
        # term -> doc id -> field -> term frequency
        self._postings: Dict[str, Dict[str, Dict[str, int]]] = {}
        self._field_lengths: Dict[str, Dict[str, int]] = {}
        self._total_lengths: Dict[str, int] = {field: 0 for field in FIELDS}
        self._loaded = False

    def is_index_loaded(self) -> bool:
        """Whether ``add_nodes`` has been called at least once."""
        return self._loaded

    def size(self) -> int:
        """Number of indexed nodes."""
        return len(self._docs)

    def add_nodes(self, nodes: Iterable[Node]) -> None:
        """Index nodes; a node whose id is already indexed is replaced."""
        count = 0
        for node in nodes:
            if node.id in self._docs:
                self._remove(node.id)
            self._add(node)
            count += 1
        self._loaded = True
        logger.debug(f"Indexed {count} nodes, {len(self._docs)} total")

    def update_node(self, node: Node) -> None:
        """Re-index a node with its new content."""
        self._remove(node.id)
        self._add(node)

    def remove_node(self, node_id: str) -> None:
        """Drop a node from the index; unknown ids are ignored."""
        self._remove(node_id)

    def clear(self) -> None:
        """Remove every node and mark the index as not loaded."""
        self._docs.clear()
        self._postings.clear()
        self._field_lengths.clear()
        self._total_lengths = {field: 0 for field in FIELDS}
        self._loaded = False

    def _add(self, node: Node) -> None:
        self._docs[node.id] = node
        lengths = {}
        for field in FIELDS:
            tokens = field_tokens(node, field)
            lengths[field] = len(tokens)
            self._total_lengths[field] += len(tokens)
            for term, tf in Counter(tokens).items():
                self._postings.setdefault(term, {}).setdefault(node.id, {})[field] = tf
        self._field_lengths[node.id] = lengths

    def _remove(self, node_id: str) -> None:
        node = self._docs.pop(node_id, None)
        if node is None:
            return
        lengths = self._field_lengths.pop(node_id)
        for field in FIELDS:
            self._total_lengths[field] -= lengths[field]
            for term in set(field_tokens(node, field)):
                postings = self._postings.get(term)
                if postings is None:
                    continue
                postings.pop(node_id, None)
                if not postings:
                    del self._postings[term]

    def _expand_term(self, term: str, fuzzy: bool) -> Dict[str, float]:
        """Indexed terms matching a query term, with their match weight."""
        matches: Dict[str, float] = {}
        if term in self._postings:
            matches[term] = 1.0

        max_distance = max_edit_distance(term, self.fuzzy) if fuzzy else 0
        if not self.prefix and max_distance == 0:
            return matches

        length = len(term)
        for candidate in self._postings:
            if candidate == term:
                continue
            weight = 0.0
            if self.prefix and candidate.startswith(term):
                distance = len(candidate) - length
                weight = PREFIX_WEIGHT * length / (length + 0.3 * distance)
            if max_distance:
                distance = bounded_levenshtein(term, candidate, max_distance)
                if distance is not None:
                    weight = max(weight, FUZZY_WEIGHT * length / (length + distance))
            if weight:
                matches[candidate] = weight
        return matches

    def _bm25(self, tf: int, doc_freq: int, field_length: int, field: str) -> float:
        doc_count = len(self._docs)
        idf = math.log(1 + (doc_count - doc_freq + 0.5) / (doc_freq + 0.5))
        avg_length = self._total_lengths[field] / doc_count
        normalization = 1 - B + B * field_length / avg_length
        return idf * (DELTA + tf * (K1 + 1) / (tf + K1 * normalization))

    def search(self, options: SearchOptions) -> List[SearchResult]:
        """Search indexed nodes.

        Args:
            options: Query text, result limit, fuzzy switch and minimum score

        Returns:
            List[SearchResult]: Hits by descending score, at most
            ``options.limit``; empty if the index was never loaded
        """
        if not self._loaded:
            logger.debug("Search on an index that was never loaded")
            return []

        terms = list(dict.fromkeys(tokenize(options.query)))
        if not terms or not self._docs:
            return []

        scores: Dict[str, float] = {}
        matched: Dict[str, List[str]] = {}
        for term in terms:
            for index_term, weight in self._expand_term(term, options.fuzzy).items():
                postings = self._postings[index_term]
                for field in FIELDS:
                    doc_freq = sum(1 for fields in postings.values() if field in fields)
                    if not doc_freq:
                        continue
                    boost = self.boosts[field]
                    for doc_id, fields in postings.items():
                        tf = fields.get(field)
                        if not tf:
                            continue
                        field_length = self._field_lengths[doc_id][field]
                        score = weight * boost * self._bm25(tf, doc_freq, field_length, field)
                        scores[doc_id] = scores.get(doc_id, 0.0) + score
                        doc_terms = matched.setdefault(doc_id, [])
                        if index_term not in doc_terms:
                            doc_terms.append(index_term)

        results = [
            SearchResult(node=self._docs[doc_id], score=score, matched_terms=matched[doc_id])
            for doc_id, score in scores.items()
            if options.min_score is None or score >= options.min_score
        ]
        results.sort(key=lambda result: result.score, reverse=True)
        return results[:options.limit]

