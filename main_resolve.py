import dotenv
dotenv.load_dotenv()

import json

from psgc_address.form import AddressForm
from psgc_address.service import PSGCService
from psgc_address.utils import EnhancedJSONEncoder


if __name__ == "__main__":
    service = PSGCService()
    raw_addresses = [
        {"region": "Region IV-A", "province": "Laguna", "city": "Calamba", "barangay": "Real"},
        {"region": "NCR", "city": "Makati", "barangay": "San Lorenzo"},
        {"region": "Region VII", "province": "Cebu", "city": "Cebu City", "barangay": "Lahug"},
    ]

    for raw in raw_addresses:
        form = AddressForm(service)
        outcome = form.resolve(raw)
        print(f"Raw: {raw}")
        print(json.dumps(outcome, cls=EnhancedJSONEncoder, ensure_ascii=False, indent=2))
        if form.error:
            print(f"Error: {form.error}")
        print("-" * 40)
