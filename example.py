import asyncio
import logging

from sqlalchemy.ext.asyncio import create_async_engine

from entity_graph import (
    Entity,
    EntityManager,
    EntityMetadata,
    Field,
    ManyToOne,
    OneToMany,
    Repository,
    SaRegistry,
    foreign_key_column,
    id_column,
    primitive_column,
)


class Plan(Entity):
    name = Field()
    discount = Field()
    subscriptions = OneToMany("Subscription", "plan")


class Subscription(Entity):
    subscriber_name = Field()
    tier = Field()
    plan = ManyToOne(Plan, "subscriptions")


registry = SaRegistry()
registry.register(
    EntityMetadata(
        Plan, [id_column(), primitive_column("name", "text"), primitive_column("discount", "int")], order=0
    ),
    EntityMetadata(
        Subscription,
        [
            id_column(),
            primitive_column("subscriber_name", "text"),
            primitive_column("tier", "int"),
            foreign_key_column("plan", "plans"),
        ],
        order=1,
    ),
)


class SubscriptionRepo(Repository[Subscription]):
    pass


async def main() -> None:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=True)
    async with engine.connect() as connection:
        await connection.run_sync(registry.sa_metadata.create_all)

        em = EntityManager(connection, registry)
        repo = SubscriptionRepo(em)
        plan = em.create(Plan, name="basic", discount=0)
        subscription = repo.create(subscriber_name="Seba", tier=1, plan=plan)
        await repo.flush()
        await connection.commit()

        other_em = EntityManager(connection, registry)
        got_subscription = await SubscriptionRepo(other_em).get(subscription.id)
        got_plan = await got_subscription.plan.load()
        assert got_plan.name == "basic", got_plan
        assert [s.id for s in await got_plan.subscriptions.load()] == [subscription.id]

        got_subscription.tier = 2
        await other_em.flush()
        await connection.commit()
    await engine.dispose()


if __name__ == "__main__":
    logging.basicConfig(level=logging.DEBUG)
    asyncio.run(main())
