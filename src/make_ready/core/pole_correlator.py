import logging
import pandas as pd
from .utils import Utils
from ..models.data_models import CorrelatedPole, MatchType

DEFAULT_GEO_THRESHOLD_M = 20.0


class PoleCorrelator:
    """
    Matches SPIDA pole identifiers (A) against Katapult pole identifiers (B)

    Passes run in order (exact id, normalized id, nearest location) and each
    pass only sees poles no earlier pass consumed. Poles are tracked by their
    source_index, so a match on one alias consumes every alias of that pole.
    """

    def __init__(self, geo_threshold_m=DEFAULT_GEO_THRESHOLD_M):
        self.geo_threshold_m = float(geo_threshold_m)

    def correlate(self, a_identifiers, b_identifiers):
        """
        Correlate two identifier lists

        Args:
            a_identifiers (list): PoleIdentifiers from the structural source
            b_identifiers (list): PoleIdentifiers from the field source

        Returns:
            list: CorrelatedPole entries, matched pairs first, then A-only, then B-only
        """
        a_poles = self._group_by_pole(a_identifiers)
        b_poles = self._group_by_pole(b_identifiers)
        matched_a = set()
        matched_b = set()
        results = []

        exact = self._match_on_key(a_identifiers, b_identifiers, matched_a, matched_b, results,
                                   lambda ident: ident.id, MatchType.EXACT)
        normalized = self._match_on_key(a_identifiers, b_identifiers, matched_a, matched_b, results,
                                        lambda ident: ident.normalized_id, MatchType.NORMALIZED)
        geo = self._match_on_location(a_identifiers, b_identifiers, matched_a, matched_b, results)

        for key, identifiers in a_poles.items():
            if key not in matched_a:
                results.append(CorrelatedPole(identifiers[0].source_ref, None, MatchType.SOURCE_A_ONLY,
                                              spida_id=identifiers[0].id))
        for key, identifiers in b_poles.items():
            if key not in matched_b:
                results.append(CorrelatedPole(None, identifiers[0].source_ref, MatchType.SOURCE_B_ONLY,
                                              katapult_id=identifiers[0].id))

        a_only = len(a_poles) - len(matched_a)
        b_only = len(b_poles) - len(matched_b)
        match_rate = (len(matched_a) / len(a_poles) * 100) if a_poles else 0
        logging.info(f"Pole correlation: {exact} exact, {normalized} normalized, {geo} by location "
                     f"(<= {self.geo_threshold_m:g} m), {a_only} SPIDA only, {b_only} Katapult only; "
                     f"match rate {match_rate:.1f}% ({len(matched_a)}/{len(a_poles)})")
        return results

    @staticmethod
    def _group_by_pole(identifiers):
        """Group identifiers by source_index keeping first-seen order"""
        poles = {}
        for ident in identifiers:
            poles.setdefault(ident.source_index, []).append(ident)
        return poles

    @staticmethod
    def _match_on_key(a_identifiers, b_identifiers, matched_a, matched_b, results, key_func, match_type):
        """Pair each unmatched A pole with the first unmatched B pole sharing a non-empty key"""
        b_lookup = {}
        for ident in b_identifiers:
            key = key_func(ident)
            if key:
                b_lookup.setdefault(key, []).append(ident)

        count = 0
        for a_ident in a_identifiers:
            if a_ident.source_index in matched_a:
                continue
            key = key_func(a_ident)
            if not key:
                continue
            for b_ident in b_lookup.get(key, []):
                if b_ident.source_index in matched_b:
                    continue
                matched_a.add(a_ident.source_index)
                matched_b.add(b_ident.source_index)
                results.append(CorrelatedPole(a_ident.source_ref, b_ident.source_ref, match_type,
                                              spida_id=a_ident.id, katapult_id=b_ident.id))
                count += 1
                logging.debug(f"{match_type} match: SPIDA '{a_ident.id}' <-> Katapult '{b_ident.id}'")
                break
        return count

    def _match_on_location(self, a_identifiers, b_identifiers, matched_a, matched_b, results):
        """Greedy nearest-pair matching of the remaining poles within the distance threshold"""
        a_points = self._located_poles(a_identifiers, matched_a)
        b_points = self._located_poles(b_identifiers, matched_b)
        if not a_points or not b_points:
            return 0

        candidates = []
        for a_order, a_ident in enumerate(a_points):
            a_coord = (a_ident.latitude, a_ident.longitude)
            for b_order, b_ident in enumerate(b_points):
                distance = Utils.haversine_m(a_coord, (b_ident.latitude, b_ident.longitude))
                if distance <= self.geo_threshold_m:
                    candidates.append((distance, a_order, b_order, a_ident, b_ident))

        # Closest pair first; a pair is skipped once either pole has been used
        candidates.sort(key=lambda c: (c[0], c[1], c[2]))

        count = 0
        for distance, _, _, a_ident, b_ident in candidates:
            if a_ident.source_index in matched_a or b_ident.source_index in matched_b:
                continue
            matched_a.add(a_ident.source_index)
            matched_b.add(b_ident.source_index)
            results.append(CorrelatedPole(a_ident.source_ref, b_ident.source_ref, MatchType.GEO,
                                          spida_id=a_ident.id, katapult_id=b_ident.id, distance_m=distance))
            count += 1
            logging.debug(f"GEO match: SPIDA '{a_ident.id}' <-> Katapult '{b_ident.id}' ({distance:.2f} m)")
        return count

    @staticmethod
    def _located_poles(identifiers, matched):
        """First identifier with coordinates for every unmatched pole"""
        located = []
        seen = set()
        for ident in identifiers:
            if ident.source_index in matched or ident.source_index in seen:
                continue
            if ident.has_coordinates():
                seen.add(ident.source_index)
                located.append(ident)
        return located

    @staticmethod
    def match_table(correlated):
        """Match diagnostics as a DataFrame, one row per correlated pole, grouped by match type"""
        order = {match_type: i for i, match_type in enumerate(MatchType.ALL)}
        ordered = sorted(correlated, key=lambda p: (
            order.get(p.match_type, len(order)),
            Utils.extract_numeric_part(p.spida_id or p.katapult_id or ""),
        ))

        records = []
        for pole in ordered:
            records.append({
                "SPIDA Pole #": pole.spida_id,
                "Katapult Pole #": pole.katapult_id,
                "Match Type": pole.match_type,
                "Match Status": MatchType.label(pole.match_type),
                "Distance (m)": round(pole.distance_m, 2) if pole.distance_m is not None else None,
            })
        columns = ["SPIDA Pole #", "Katapult Pole #", "Match Type", "Match Status", "Distance (m)"]
        return pd.DataFrame(records, columns=columns)
