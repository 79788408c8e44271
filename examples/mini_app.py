#!/usr/bin/env python
# run:
# $ FLASK_APP=mini_app flask run
# $ curl http://127.0.0.1:5000/my_api/discover/
import uuid
from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from aggrest import AggrestAPI, RestController, resource_action, transient_attr

db = SQLAlchemy()


class Order(db.Model):
    """
    description: A customer order
    """

    __tablename__ = "orders"
    __aggregate_root__ = True

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    customer = db.Column(db.String)
    email = db.Column(db.String)
    lines = db.relationship("OrderLine", cascade="all, delete-orphan", order_by="OrderLine.id")

    @transient_attr
    def total(self):
        """
        type: integer
        """
        return sum(line.quantity * line.price for line in self.lines)


class OrderLine(db.Model):
    __tablename__ = "order_lines"

    id = db.Column(db.Integer, primary_key=True)
    product = db.Column(db.String)
    quantity = db.Column(db.Integer, default=1)
    price = db.Column(db.Integer, default=0)
    order_id = db.Column(db.String(36), db.ForeignKey("orders.id"))


class OrderController(RestController):
    """
    Orders of the shop
    """

    @resource_action(http_methods=["GET"])
    def count(self, email: str = None):
        """
        description: Count the orders
        parameters:
            email: Only count the orders with this email address
        return: The number of orders
        """
        query = db.session.query(Order)
        if email:
            query = query.filter(Order.email == email)
        return self.make_response({"count": query.count()})


def create_api(app, host="127.0.0.1", port=5000, prefix="/my_api"):
    api = AggrestAPI(app, prefix=prefix, app_db=db)
    api.expose_object(Order, controller=OrderController, collection_name="orders")
    db.session.add(Order(customer="test", email="email@x.org", lines=[OrderLine(product="Book", quantity=2, price=15)]))
    db.session.commit()
    print(f"Starting API: http://{host}:{port}{prefix}/")


def create_app(host="127.0.0.1"):
    app = Flask("demo_app")
    app.config.update(SQLALCHEMY_DATABASE_URI="sqlite:///mini_app.sqlitedb")
    db.init_app(app)
    with app.app_context():
        db.create_all()
        create_api(app, host)
    return app


app = create_app()

if __name__ == "__main__":
    app.run()
