"""Señales de mutación de atributos.

Los almacenes de atributos envían ``attribute_changed`` en cada ``set``; los
cachés derivados (precios) se suscriben para invalidar la entidad afectada.
"""

from blinker import Namespace

_signals = Namespace()

# sender: entity_id, kwargs: key
attribute_changed = _signals.signal("attribute-changed")
