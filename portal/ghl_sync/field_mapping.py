"""
GHL -> Portal Field Mapping

The schema boundary between GHL opportunity/contact data and portal deal
documents. Keys are GHL field names, values are deal field names. Several
GHL keys may feed the same deal field; the first non-blank one wins.
"""

# Top-level opportunity fields (both the API casing and the flattened
# workflow-webhook casing GHL sends)
TOP_LEVEL_FIELD_MAP = {
    "name": "opportunityName",
    "opportunity_name": "opportunityName",
    "status": "status",
    "pipelineId": "pipelineId",
    "pipeline_id": "pipelineId",
    "pipeline_name": "pipeline",
    "pipelineStageId": "stageId",
    "pipeline_stage_id": "stageId",
    "monetaryValue": "opportunityValue",
    "lead_value": "opportunityValue",
    "assignedTo": "owner",
    "assigned_to": "owner",
    "source": "opportunitySource",
    "opportunity_source": "opportunitySource",
    "lostReason": "lostReason",
    "lost_reason": "lostReason",
    "contactId": "contactId",
    "contact_id": "contactId",
    "full_name": "contactName",
    "email": "contactEmail",
    "phone": "contactPhone",
    "company_name": "companyName",
    "address1": "streetAddress",
    "city": "city",
    "state": "state",
    "postal_code": "postalCode",
    "country": "country",
    "website": "website",
    "timezone": "timeZone",
    "tags": "tags",
    "followers": "followers",
}

# Namespaced custom fields, keyed by GHL fieldKey
OPPORTUNITY_CUSTOM_FIELD_MAP = {
    "opportunity.application_date": "applicationDate",
    "opportunity.property_name": "propertyName",
    "opportunity.property_address": "propertyAddress",
    "opportunity.property_apn": "propertyAPN",
    "opportunity.property_type": "propertyType",
    "opportunity.property_vintage": "propertyVintage",
    "opportunity.property_status": "propertyStatus",
    "opportunity._of_units": "numberOfUnits",
    "opportunity.number_of_units": "numberOfUnits",
    "opportunity.purchase_price": "purchasePrice",
    "opportunity.original_purchase_date": "originalPurchaseDate",
    "opportunity.occupancy": "occupancy",
    "opportunity.occupancy_": "occupancyPercentage",
    "opportunity.appraised_value": "appraisedValue",
    "opportunity.debit_yield": "debitYield",
    "opportunity.property_capex": "propertyCapEx",
    "opportunity.cost_basis": "costBasis",
    "opportunity.management_entity": "managementEntity",
    "opportunity.borrowing_entity": "borrowingEntity",
    "opportunity.lender": "lender",
    "opportunity.loan_amount": "loanAmount",
    "opportunity.loan_request": "loanRequest",
    "opportunity.unpaid_principal_balance": "unpaidPrincipalBalance",
    "opportunity.deal_type": "dealType",
    "opportunity.investment_type": "investmentType",
    "opportunity.ltv": "ltv",
    "opportunity.dscr": "dscr",
    "opportunity.hc_origination_fee": "hcOriginationFee",
    "opportunity.ysp": "ysp",
    "opportunity.processing_fee": "processingFee",
    "opportunity.lender_origination_fee": "lenderOriginationFee",
    "opportunity.term": "term",
    "opportunity.index": "index",
    "opportunity.sponsor_name": "sponsorName",
    "opportunity.sponsor_net_worth": "sponsorNetWorth",
    "opportunity.sponsor_liquidity": "sponsorLiquidity",
    "opportunity.index_": "indexPercentage",
    "opportunity.spread_": "spreadPercentage",
    "opportunity.rate_": "ratePercentage",
    "opportunity.probability_": "probabilityPercentage",
    "opportunity.amortization": "amortization",
    "opportunity.exit_fee": "exitFee",
    "opportunity.prepayment_penalty": "prepaymentPenalty",
    "opportunity.recourse": "recourse",
    "opportunity.fixed_maturity_date": "fixedMaturityDate",
    "opportunity.floating_maturity_date": "floatingMaturityDate",
    "opportunity.close_date": "closeDate",
    "opportunity.additional_information": "additionalInformation",
    "opportunity.call_center_employee": "callCenterEmployee",
    "opportunity.mondaycom_item_id": "mondaycomItemId",
}

CONTACT_CUSTOM_FIELD_MAP = {
    "contact.application_deal_type": "applicationDealType",
    "contact.application_property_type": "applicationPropertyType",
    "contact.application_property_address": "applicationPropertyAddress",
    "contact.application_property_vintage": "applicationPropertyVintage",
    "contact.application_sponsor_net_worth": "applicationSponsorNetWorth",
    "contact.application_sponsor_liquidity": "applicationSponsorLiquidity",
    "contact.application_loan_request": "applicationLoanRequest",
    "contact.application_document_upload": "applicationDocumentUpload",
    "contact.application_additional_information": "applicationAdditionalInformation",
    "contact.application_submitted_by": "applicationSubmittedBy",
    "contact.discord_username": "discordUsername",
    "contact.lead_property_type": "leadPropertyType",
    "contact.lead_property_address": "leadPropertyAddress",
    "contact.lead_property_city": "leadPropertyCity",
    "contact.lead_property_state": "leadPropertyState",
    "contact.lead_property_purchase_date": "leadPropertyPurchaseDate",
    "contact.lead_property_purchase_price": "leadPropertyPurchasePrice",
    "contact.lead_property_no_of_units": "leadPropertyNoOfUnits",
    "contact.contact_name": "contactName",
    "contact.contact_email": "contactEmail",
    "contact.contact_phone": "contactPhone",
    "contact.business_name": "businessName",
}

CUSTOM_FIELD_MAP = {**OPPORTUNITY_CUSTOM_FIELD_MAP, **CONTACT_CUSTOM_FIELD_MAP}

# Keys that may carry the opportunity's property address, in lookup order
PROPERTY_ADDRESS_KEYS = (
    "opportunity.property_address",
    "property_address",
)
