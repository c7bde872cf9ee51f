"""Geocoding proxy endpoint"""

from flask import request
from flask_restx import Namespace, Resource

from propviz.services.geocoding_client import GeocodingClient
from propviz.utils.exceptions import ValidationError

geocode_ns = Namespace("geocode", description="Address lookup")

@geocode_ns.route("")
class Geocode(Resource):
    """Proxy to the Google Geocoding API"""

    @geocode_ns.doc("geocode_address", params={"address": "Address to look up"})
    def get(self):
        """Geocode an address; the vendor response is returned as is"""
        address = request.args.get("address", "").strip()

        if not address:
            raise ValidationError("Address is required")

        with GeocodingClient() as client:
            return client.geocode(address)
