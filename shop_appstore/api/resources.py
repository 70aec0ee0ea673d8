"""Shop REST resources exposed by the SDK and their API constants."""

from __future__ import annotations

from typing import ClassVar


class Resource:
    """A REST collection under ``/webapi/rest/{name}``."""

    name: ClassVar[str] = ""


class Attribute(Resource):
    name = "attributes"

    TYPE_TEXT = 0
    TYPE_CHECKBOX = 1
    TYPE_SELECT = 2


class OptionValue(Resource):
    name = "option-values"

    HTTP_ERROR_OPTION_CHILDREN_NOT_SUPPORTED = "option_children_not_supported"

    PRICE_TYPE_DECREASE = -1
    PRICE_TYPE_KEEP = 0
    PRICE_TYPE_INCREASE = 1

    PRICE_PERCENT = 0
    PRICE_AMOUNT = 1


class Order(Resource):
    name = "orders"


class OrderProduct(Resource):
    name = "order-products"


class Product(Resource):
    name = "products"


class Status(Resource):
    name = "statuses"

    TYPE_NEW = 1
    TYPE_OPENED = 2
    TYPE_CLOSED = 3
    # not completed
    TYPE_UNREALIZED = 4


class Zone(Resource):
    name = "zones"

    # division by countries / regions / post codes
    ZONE_MODE_COUNTRIES = 1
    ZONE_MODE_REGIONS = 2
    ZONE_MODE_CODES = 3
