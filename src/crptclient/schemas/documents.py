"""Document payload models.

This module defines the goods-introduction document sent to the
registration API. Python attribute names are snake_case; the wire
names are declared as aliases and used when the payload is serialized.
"""

from __future__ import annotations

from datetime import date
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

DocType = Literal["LP_INTRODUCE_GOODS"]
DocStatus = Literal["NEW"]
ProductType = Literal["PRODUCT_TYPE"]


class Description(BaseModel):
    """Free-form description block of a document.

    Attributes:
        participant_inn: Taxpayer number of the participant.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True, frozen=True)

    participant_inn: str = Field(..., alias="participantInn")


class Product(BaseModel):
    """Single product entry of a document.

    Attributes:
        certificate_document: Certificate document type.
        certificate_document_date: Date of the certificate document.
        certificate_document_number: Number of the certificate document.
        owner_inn: Taxpayer number of the owner.
        producer_inn: Taxpayer number of the producer.
        production_date: Production date of the product.
        tnved_code: Commodity nomenclature code.
        uit_code: Unique identification code.
        uitu_code: Unique identification code of the transport package.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True, frozen=True)

    certificate_document: str | None = Field(None, alias="certificate_document")
    certificate_document_date: date | None = Field(
        None, alias="certificate_document_date"
    )
    certificate_document_number: str | None = Field(
        None, alias="certificate_document_number"
    )
    owner_inn: str | None = Field(None, alias="owner_inn")
    producer_inn: str | None = Field(None, alias="producer_inn")
    production_date: date | None = Field(None, alias="production_date")
    tnved_code: str | None = Field(None, alias="tnved_code")
    uit_code: str | None = Field(None, alias="uit_code")
    uitu_code: str | None = Field(None, alias="uitu_code")


class Document(BaseModel):
    """Goods-introduction document submitted to the registration API.

    Attributes:
        description: Optional description block.
        doc_id: Client-side document identifier.
        doc_status: Document status.
        doc_type: Document type.
        import_request: Whether the goods are imported.
        owner_inn: Taxpayer number of the owner.
        participant_inn: Taxpayer number of the participant.
        producer_inn: Taxpayer number of the producer.
        production_date: Production date.
        production_type: Production type.
        products: Products covered by the document.
        reg_date: Registration date.
        reg_number: Registration number.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True, frozen=True)

    description: Description | None = Field(None, alias="description")
    doc_id: str | None = Field(None, alias="doc_id")
    doc_status: DocStatus = Field("NEW", alias="doc_status")
    doc_type: DocType = Field("LP_INTRODUCE_GOODS", alias="doc_type")
    import_request: bool = Field(False, alias="importRequest")
    owner_inn: str | None = Field(None, alias="owner_inn")
    participant_inn: str | None = Field(None, alias="participant_inn")
    producer_inn: str | None = Field(None, alias="producer_inn")
    production_date: date | None = Field(None, alias="production_date")
    production_type: ProductType = Field("PRODUCT_TYPE", alias="production_type")
    products: list[Product] = Field(default_factory=list, alias="products")
    reg_date: date | None = Field(None, alias="reg_date")
    reg_number: str | None = Field(None, alias="reg_number")

    def to_json(self) -> str:
        """Serialize the document with wire field names.

        Returns:
            JSON string; unset optional fields are omitted.
        """
        return self.model_dump_json(by_alias=True, exclude_none=True)
