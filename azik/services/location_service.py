from typing import Dict, List

# A representative subset of provinces, districts and neighborhoods.
LOCATIONS: Dict[str, Dict[str, List[str]]] = {
    "Ankara": {
        "Çankaya": ["Bahçelievler", "Kızılay", "Kavaklıdere", "Ayrancı"],
        "Keçiören": ["Etlik", "Bağlum", "Ovacık"],
        "Yenimahalle": ["Batıkent", "Demetevler", "Ostim"],
    },
    "İstanbul": {
        "Beşiktaş": ["Levent", "Etiler", "Bebek", "Ortaköy"],
        "Kadıköy": ["Moda", "Fenerbahçe", "Göztepe", "Suadiye"],
        "Şişli": ["Mecidiyeköy", "Nişantaşı", "Fulya"],
        "Üsküdar": ["Altunizade", "Çengelköy", "Kuzguncuk"],
    },
    "İzmir": {
        "Bornova": ["Erzene", "Kazımdirik", "Evka 3"],
        "Karşıyaka": ["Bostanlı", "Mavişehir", "Alaybey"],
        "Konak": ["Alsancak", "Göztepe", "Güzelyalı"],
    },
}


class LocationService:
    """Read-only province → district → neighborhood lookup."""

    def __init__(self, locations: Dict[str, Dict[str, List[str]]] = LOCATIONS):
        self.locations = locations

    def provinces(self) -> List[str]:
        return sorted(self.locations)

    def districts(self, province: str) -> List[str]:
        return sorted(self.locations.get(province, {}))

    def neighborhoods(self, province: str, district: str) -> List[str]:
        return list(self.locations.get(province, {}).get(district, []))
