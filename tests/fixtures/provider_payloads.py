"""프로바이더 payload 자산

- *_PAYLOAD: 프로바이더 wire format (httpx.MockTransport 응답용)
- 나머지: 어댑터가 만드는 중간 레코드 (fake 프로바이더용)
"""

from property_engine.providers.base import ListingRecord, ParcelMatch
from property_engine.utils.address import AddressParts

# ============================================================================
# CoreLogic wire format
# ============================================================================

CORELOGIC_TOKEN_PAYLOAD = {
    "access_token": "token-abc",
    "token_type": "Bearer",
    "expires_in": 3599,
}

CORELOGIC_SEARCH_PAYLOAD = {
    "items": [
        {
            "clip": "2345678901",
            "address": {
                "streetAddress": "1600 AMPHITHEATRE PKWY",
                "city": "MOUNTAIN VIEW",
                "state": "CA",
                "zipCode": "94043-1351",
            },
            "location": {"latitude": 37.42202, "longitude": -122.08408},
        }
    ]
}

CORELOGIC_SPATIAL_PAYLOAD = {
    "items": [
        {
            "clip": "far-parcel",
            "address": {"streetAddress": "1700 AMPHITHEATRE PKWY", "city": "MOUNTAIN VIEW", "state": "CA"},
            "location": {"latitude": 37.4231, "longitude": -122.0850},
            "distance": 85.2,
        },
        {
            "clip": "2345678901",
            "address": {"streetAddress": "1600 AMPHITHEATRE PKWY", "city": "MOUNTAIN VIEW", "state": "CA"},
            "location": {"latitude": 37.42202, "longitude": -122.08408},
            "distance": 4.1,
        },
    ]
}

CORELOGIC_BUILDINGS_PAYLOAD = {
    "buildings": [
        {
            "propertyType": "Single Family Residence",
            "yearBuilt": "1998",
            "livingAreaSquareFeet": 2100,
            "bedrooms": 3,
            "bathrooms": "2.5",
        }
    ]
}

CORELOGIC_VALUATION_PAYLOAD = {
    "avm": {"estimatedValue": 2450000, "confidenceScore": 87},
    "taxAssessment": {"totalAssessedValue": 1900000, "year": 2024},
}

# ============================================================================
# Zillow (RapidAPI) wire format
# ============================================================================

ZILLOW_SEARCH_PAYLOAD = {
    "props": [
        {
            "zpid": 27908601,
            "address": "123 Main St, Houston, TX 77002",
            "price": 285000,
            "bedrooms": 3,
            "bathrooms": 2,
            "livingArea": 1650,
            "latitude": 29.7589,
            "longitude": -95.3677,
            "imgSrc": "https://photos.example.com/27908601-thumb.jpg",
            "propertyType": "SINGLE_FAMILY",
            "listingStatus": "FOR_SALE",
            "zestimate": 291000,
        },
        {
            "zpid": "27908602",
            "address": "45 Oak Ave APT 2, Houston, TX 77003",
            "price": 199000,
            "bedrooms": 2,
            "bathrooms": 1,
            "livingArea": 900,
            "latitude": 29.7521,
            "longitude": -95.3500,
            "propertyType": "CONDO",
            "listingStatus": "FOR_SALE",
        },
        {"address": "no zpid here, Houston, TX"},
    ]
}

ZILLOW_IMAGES_PAYLOAD = {
    "images": [
        "https://photos.example.com/27908601-1.jpg",
        "https://photos.example.com/27908601-2.jpg",
    ]
}

# ============================================================================
# 중간 레코드
# ============================================================================

AMPHITHEATRE_ADDRESS = AddressParts(
    address1="1600 Amphitheatre Pkwy",
    city="Mountain View",
    state="CA",
    postal_code="94043",
)

AMPHITHEATRE_PARCEL = ParcelMatch(
    parcel_id="2345678901",
    address=AMPHITHEATRE_ADDRESS,
    latitude=37.42202,
    longitude=-122.08408,
)

AMPHITHEATRE_LISTING = ListingRecord(
    listing_id="19506820",
    address=AMPHITHEATRE_ADDRESS,
    price=2_600_000,
    bedrooms=4,
    bathrooms=2.5,
    square_feet=2150,
    latitude=37.42205,
    longitude=-122.08410,
    image_url="https://photos.example.com/19506820-thumb.jpg",
    property_type="single_family",
    status="for_sale",
    estimated_value=2_500_000,
)

HOUSTON_LISTINGS = (
    ListingRecord(
        listing_id="27908601",
        address=AddressParts("123 Main St", "Houston", "TX", "77002"),
        price=285_000,
        bedrooms=3,
        bathrooms=2.0,
        square_feet=1650,
        latitude=29.7589,
        longitude=-95.3677,
        image_url="https://photos.example.com/27908601-thumb.jpg",
        property_type="single_family",
        status="for_sale",
    ),
    ListingRecord(
        listing_id="27908602",
        address=AddressParts("45 Oak Ave", "Houston", "TX", "77003"),
        price=199_000,
        bedrooms=2,
        bathrooms=1.0,
        square_feet=900,
        latitude=29.7521,
        longitude=-95.3500,
        property_type="condo",
        status="for_sale",
    ),
    ListingRecord(
        listing_id="27908603",
        address=AddressParts("9 Elm Dr", "Houston", "TX", "77004"),
        price=349_000,
        bedrooms=4,
        bathrooms=3.0,
        square_feet=2400,
        latitude=29.7300,
        longitude=-95.3600,
        property_type="single_family",
        status="for_sale",
    ),
)
