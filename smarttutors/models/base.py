from typing import Annotated, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

# Mongo ObjectIds travel through the API as plain strings
PyObjectId = Annotated[str, BeforeValidator(str)]


class MongoBaseModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    id: Optional[PyObjectId] = Field(default=None, alias="_id")

    @classmethod
    def from_mongo(cls, document: dict):
        return cls.model_validate(document)

    def to_mongo(self) -> dict:
        """Document ready for insert_one; _id is left to the server when unset."""
        data = self.model_dump(by_alias=True)
        if data.get("_id") is None:
            data.pop("_id", None)
        return data
