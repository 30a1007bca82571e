import logging

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from .errors import NotFoundError, ValidationError
from .models import ShoppingItem, Store, utcnow
from .schemas import ItemCreate, ItemMove, ItemUpdate, StoreCreate, StoreUpdate

logger = logging.getLogger(__name__)


def get_store(session: Session, store_id: int) -> Store:
    store = session.get(Store, store_id)
    if not store:
        raise NotFoundError("Store not found")
    return store


def get_store_item(session: Session, store_id: int, item_id: int) -> ShoppingItem:
    item = session.exec(
        select(ShoppingItem).where(ShoppingItem.id == item_id, ShoppingItem.store_id == store_id)
    ).first()
    if not item:
        raise NotFoundError("Store or item not found")
    return item


def list_stores(session: Session) -> list[Store]:
    return session.exec(select(Store).order_by(Store.name)).all()


def _commit_store(session: Session, store: Store) -> Store:
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise ValidationError(f"A store named {store.name!r} already exists") from None
    session.refresh(store)
    return store


def create_store(session: Session, payload: StoreCreate) -> Store:
    store = Store(name=payload.name)
    if payload.color:
        store.color = payload.color
    if payload.event:
        store.event = payload.event
    store.items = [ShoppingItem(**item.model_dump()) for item in payload.items]
    session.add(store)
    return _commit_store(session, store)


def update_store(session: Session, store_id: int, payload: StoreUpdate) -> Store:
    store = get_store(session, store_id)
    for field, value in payload.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(store, field, value)
    store.updated_at = utcnow()
    session.add(store)
    return _commit_store(session, store)


def delete_store(session: Session, store_id: int):
    store = get_store(session, store_id)
    session.delete(store)
    session.commit()


def _touch(session: Session, store: Store):
    store.updated_at = utcnow()
    session.add(store)
    session.commit()
    session.refresh(store)


def add_item(session: Session, store_id: int, payload: ItemCreate) -> Store:
    store = get_store(session, store_id)
    store.items.append(ShoppingItem(**payload.model_dump()))
    _touch(session, store)
    return store


def update_item(session: Session, store_id: int, payload: ItemUpdate) -> Store:
    item = get_store_item(session, store_id, payload.item_id)
    if payload.checked is not None:
        item.checked = payload.checked
    if payload.name is not None:
        item.name = payload.name
    if "quantity" in payload.model_fields_set:
        item.quantity = payload.quantity
    session.add(item)
    store = item.store
    _touch(session, store)
    return store


def remove_item(session: Session, store_id: int, item_id: int) -> Store:
    store = get_store(session, store_id)
    item = get_store_item(session, store_id, item_id)
    store.items.remove(item)
    _touch(session, store)
    return store


def move_item(session: Session, store_id: int, payload: ItemMove) -> Store:
    """Move an item to another store.

    The item is deleted from the source and recreated in the target, so it
    gets a new id there. Returns the target store.
    """
    source = get_store(session, store_id)
    target = get_store(session, payload.target_store_id)
    item = get_store_item(session, store_id, payload.item_id)
    if source.id == target.id:
        return source
    name = item.name
    source.items.remove(item)
    target.items.append(ShoppingItem(name=name, quantity=item.quantity, checked=item.checked))
    now = utcnow()
    source.updated_at = now
    target.updated_at = now
    session.add(source)
    session.add(target)
    session.commit()
    session.refresh(target)
    logger.info("Moved item %r from store %s to %s", name, store_id, target.id)
    return target
